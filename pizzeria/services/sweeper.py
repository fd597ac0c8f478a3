# pizzeria/services/sweeper.py
import asyncio
import logging
from collections.abc import Callable

from sqlmodel import Session

from pizzeria.schemas.order import SweepResult
from pizzeria.services.order_service import OrderService

logger = logging.getLogger(__name__)


def run_sweep_once(service: OrderService, session_factory: Callable[[], Session]) -> SweepResult:
    """One sweep in its own session (unit of work)."""
    with session_factory() as session:
        return service.run_automatic_sweep(session)


async def sweep_forever(
    service: OrderService,
    session_factory: Callable[[], Session],
    interval_seconds: float,
) -> None:
    """
    Periodic automatic transitions. Each tick runs in a worker thread;
    a failing tick is logged and the loop carries on until cancelled.
    """
    logger.info("Automatic transition sweep every %ss", interval_seconds)
    while True:
        try:
            await asyncio.to_thread(run_sweep_once, service, session_factory)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Automatic transition sweep failed")
        await asyncio.sleep(interval_seconds)
