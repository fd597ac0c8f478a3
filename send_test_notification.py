# send_test_notification.py
import argparse

from sqlmodel import Session

from pizzeria.core.dependencies import get_settings_service
from pizzeria.database import create_db_and_tables, engine
from pizzeria.schemas.notification import NotificationChannel


def main():
    parser = argparse.ArgumentParser(
        description="Check the stored email / SMS notification configuration."
    )
    parser.add_argument(
        "channel",
        choices=[c.value for c in NotificationChannel],
        nargs="?",
        default=NotificationChannel.EMAIL.value,
    )
    args = parser.parse_args()

    create_db_and_tables()
    print(f"Testing {args.channel} configuration...")

    with Session(engine) as session:
        result = get_settings_service().test_channel(session, NotificationChannel(args.channel))

    if result.success:
        print("OK: configuration works.")
    else:
        print(f"FAILED: {result.error}")


if __name__ == "__main__":
    main()
