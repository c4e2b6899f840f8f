"""Command-line helpers for local development.

Creates the database tables, provisions users and mints bearer tokens for
them, which is otherwise the job of the external auth service.

Usage:
    python main.py init-db
    python main.py add-user teacher@example.com --name "Anna" --role teacher
    python main.py token teacher@example.com
"""

import argparse
import logging
import sys
from typing import List, Optional

from api.routes.auth import create_access_token
from core.database import SessionLocal, init_db
from core.logging_config import setup_logging
from utils.user_manager import UserAlreadyExistsError, UserManager, UserNotFoundError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tutoring relations service tools")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create missing database tables")

    add_user = subparsers.add_parser("add-user", help="Provision a local user")
    add_user.add_argument("email")
    add_user.add_argument("--name", default=None)
    add_user.add_argument("--role", choices=["teacher", "student"], default="student")

    token = subparsers.add_parser("token", help="Print a bearer token for a user")
    token.add_argument("email")
    return parser


def issue_token(user_manager: UserManager, email: str) -> str:
    """Mint a bearer token for the user with the given email.

    Raises:
        UserNotFoundError: If no such user exists.
    """
    user = user_manager.get_user_by_email(email)
    if user is None:
        raise UserNotFoundError(f"User '{email}' not found")
    return create_access_token(data={"sub": user.user_id})


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)

    init_db()
    if args.command == "init-db":
        logger.info("Database ready")
        return 0

    db = SessionLocal()
    try:
        user_manager = UserManager(db)
        if args.command == "add-user":
            try:
                user = user_manager.create_user(args.email, name=args.name, role=args.role)
            except UserAlreadyExistsError as e:
                logger.error("%s", e)
                return 1
            print(user.user_id)
        elif args.command == "token":
            try:
                print(issue_token(user_manager, args.email))
            except UserNotFoundError as e:
                logger.error("%s", e)
                return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
