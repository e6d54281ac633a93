"""Utility script to register a notification recipient and print a token."""

from __future__ import annotations

import argparse
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from notification_engine.domain.entities import User
from notification_engine.infrastructure.database import SessionLocal, initialize_database
from notification_engine.infrastructure.repositories import UserRepository
from notification_engine.infrastructure.security import create_access_token


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for user creation."""

    parser = argparse.ArgumentParser(
        description="Create a user that can receive notifications.",
    )
    parser.add_argument("--name", default="Administrator", help="Display name")
    parser.add_argument(
        "--email",
        default=None,
        help="Address used for email notifications (optional)",
    )
    parser.add_argument(
        "--admin",
        action="store_true",
        help="Allow the user to manage templates, batches and connections.",
    )
    parser.add_argument(
        "--token-days",
        type=int,
        default=30,
        help="Lifetime of the printed bearer token in days (default: 30)",
    )
    return parser.parse_args()


def main() -> None:
    """Create a user using the provided command line arguments."""

    args = parse_args()
    initialize_database()

    session = SessionLocal()
    try:
        repository = UserRepository(session)
        if args.email and repository.get_by_email(args.email) is not None:
            raise SystemExit(f"A user with email {args.email} already exists.")
        user = repository.create(
            User(id=None, name=args.name, email=args.email, is_admin=args.admin)
        )
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Could not store the user: {exc}") from exc
    finally:
        session.close()

    token = create_access_token(
        {"sub": str(user.id)}, expires_delta=timedelta(days=args.token_days)
    )
    print(
        "User created:\n"
        f"  ID: {user.id}\n"
        f"  Name: {user.name}\n"
        f"  Email: {user.email or '-'}\n"
        f"  Admin: {'yes' if user.is_admin else 'no'}\n"
        f"  Token: {token}"
    )


if __name__ == "__main__":
    main()
