# run_sweep.py
import argparse
import asyncio
import logging

from sqlmodel import Session

from pizzeria.core.config import get_settings
from pizzeria.core.dependencies import get_order_service
from pizzeria.database import create_db_and_tables, engine
from pizzeria.services.sweeper import run_sweep_once, sweep_forever


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Apply automatic order status transitions.")
    parser.add_argument("--loop", action="store_true", help="keep sweeping until interrupted")
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.AUTO_TRANSITION_INTERVAL_SECONDS,
        help="seconds between sweeps with --loop",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.LOG_LEVEL)
    create_db_and_tables()
    service = get_order_service()

    if args.loop:
        try:
            asyncio.run(sweep_forever(service, lambda: Session(engine), args.interval))
        except KeyboardInterrupt:
            print("Stopped.")
        return

    result = run_sweep_once(service, lambda: Session(engine))
    print(f"Evaluated {result.evaluated} active orders, applied {len(result.applied)} transitions.")
    for t in result.applied:
        print(f"  {t.order_number}: {t.old_status.value} -> {t.new_status.value}")


if __name__ == "__main__":
    main()
