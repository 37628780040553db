"""
Create a staff account (admin or designer) from the command line.

Public sign-up only ever creates customers, so the first admin has to be
bootstrapped here.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from roofrix.auth import create_user_account
from roofrix.dependencies import get_db_client
from roofrix.errors import PortalError
from roofrix.types import Role

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an admin or designer account")
    parser.add_argument("email", help="Account email")
    parser.add_argument(
        "--role",
        choices=[Role.ADMIN.value, Role.DESIGNER.value, Role.CUSTOMER.value],
        default=Role.ADMIN.value,
    )
    parser.add_argument("--display-name", default="")
    parser.add_argument(
        "--password",
        default=None,
        help="Password (prompted for when omitted)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    password = args.password or getpass.getpass("Password: ")
    try:
        user = create_user_account(
            get_db_client(),
            email=args.email,
            password=password,
            role=Role(args.role),
            display_name=args.display_name,
        )
    except PortalError as exc:
        logger.error("Could not create account: %s", exc.message)
        return 1
    print(user.uid)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
