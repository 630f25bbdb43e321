from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from peplink_warranty import config
from peplink_warranty.auth import AuthError
from peplink_warranty.incontrol_client import OrganizationFetchError
from peplink_warranty.orchestrator import run


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Email a CSV of Peplink InControl devices whose warranty expires within 90 days."
    )
    parser.add_argument("--dry-run", action="store_true", help="log the CSV instead of emailing it")
    parser.add_argument("--verbose", action="store_true", help="log raw API responses")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    load_dotenv()

    try:
        settings = config.Settings.from_env()
    except config.ConfigurationError as exc:
        if exc.missing:
            logging.error("Missing configuration: %s", exc)
        else:
            logging.error("Invalid configuration: %s", exc)
        return 1

    try:
        run(settings, dry_run=args.dry_run)
    except AuthError as exc:
        logging.error("Error retrieving token: %s", exc)
        return 1
    except OrganizationFetchError as exc:
        logging.error("Error fetching organizations: %s", exc)
        return 1
    except Exception as exc:  # noqa: BLE001
        logging.exception("Unexpected error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
