"""Command-line administration for ThesisHub.

Usage:
    python main.py create-user USERNAME --role FACULTY --email E --full-name N
    python main.py show-db

create-user bootstraps faculty and secretary accounts (self-registration only
creates students). It is idempotent on the username. show-db prints users and
theses as JSON.
"""

import argparse
import getpass
import json
import logging
import sys

from core.database import SessionLocal, init_db
from core.exceptions import ThesisHubError
from schemas.user import CreateUserRequest, UserRole
from utils.thesis_manager import ThesisManager
from utils.user_manager import UserManager

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_user(args: argparse.Namespace) -> int:
    """Create an account unless one with the same username exists."""
    password = args.password or getpass.getpass("Password: ")
    db = SessionLocal()
    try:
        manager = UserManager(db)
        existing = manager.get_user_by_username(args.username)
        if existing:
            print(f"User '{args.username}' already exists (id={existing.id}, role={existing.role.value})")
            return 0
        user = manager.create_user(
            CreateUserRequest(
                username=args.username,
                password=password,
                email=args.email,
                full_name=args.full_name,
                role=UserRole(args.role),
            )
        )
        print(f"Created {user.role.value} user '{user.username}' (id={user.id})")
        return 0
    except ThesisHubError as e:
        logger.error("Failed to create user: %s", e)
        return 1
    finally:
        db.close()


def show_db(args: argparse.Namespace) -> int:
    """Dump users and theses to stdout."""
    db = SessionLocal()
    try:
        users = UserManager(db).list_users()
        theses = ThesisManager(db).list_theses()
        print("Users:")
        print(json.dumps([u.model_dump(mode="json") for u in users], indent=2, ensure_ascii=False))
        print("\nTheses:")
        print(json.dumps([t.model_dump(mode="json") for t in theses], indent=2, ensure_ascii=False))
        return 0
    finally:
        db.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ThesisHub administration")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="create a faculty or secretary account")
    create.add_argument("username")
    create.add_argument(
        "--role",
        choices=[r.value for r in UserRole],
        default=UserRole.FACULTY.value,
    )
    create.add_argument("--email", required=True)
    create.add_argument("--full-name", required=True)
    create.add_argument("--password", help="prompted for when omitted")
    create.set_defaults(func=create_user)

    show = sub.add_parser("show-db", help="print users and theses")
    show.set_defaults(func=show_db)
    return parser


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()
    init_db()
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
