#!/usr/bin/env python3
"""
Print an access token for a local user, creating the user if needed.

Usage:
  python scripts/issue_token.py
  python scripts/issue_token.py --username alice --minutes 1440
"""

from __future__ import annotations

import argparse
import datetime
import sys
from pathlib import Path

from sqlalchemy import select

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from promptvault.db import SessionLocal, init_db  # noqa: E402
from promptvault.models import User  # noqa: E402
from promptvault.services.jwt_auth_service import create_access_token  # noqa: E402

DEFAULT_USERNAME = "local"


def get_or_create_user(session, username: str) -> User:
    user = session.execute(select(User).where(User.username == username)).scalars().first()
    if user is None:
        user = User(username=username, is_active=True)
        session.add(user)
        session.commit()
        session.refresh(user)
    return user


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Issue an access token for a local user.")
    parser.add_argument("--username", default=DEFAULT_USERNAME, help="user to issue the token for")
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="token lifetime in minutes (default: ACCESS_TOKEN_EXPIRE_MINUTES)",
    )
    args = parser.parse_args(argv)
    if args.minutes is not None and args.minutes <= 0:
        parser.error("--minutes must be a positive integer")

    init_db()
    session = SessionLocal()
    try:
        user = get_or_create_user(session, args.username)
        if not user.is_active:
            print(f"User {args.username} is disabled", file=sys.stderr)
            return 1
        expires = datetime.timedelta(minutes=args.minutes) if args.minutes else None
        token = create_access_token({"sub": str(user.id)}, expires_delta=expires)
    finally:
        session.close()

    print(token)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
