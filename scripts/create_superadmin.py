from __future__ import annotations

import argparse
import os
from typing import Optional

from sqlmodel import Session

from app.core.security import is_valid_password
from app.db.init_db import init_db
from app.db.session import engine
from app.services.user_service import ensure_superadmin


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Create the platform superadmin account if none exists.')
    parser.add_argument('--username', default=os.getenv('SUPERADMIN_USERNAME', 'superadmin'))
    parser.add_argument('--email', default=os.getenv('SUPERADMIN_EMAIL'))
    parser.add_argument('--password', default=os.getenv('SUPERADMIN_PASSWORD'))
    args = parser.parse_args(argv)

    if not args.email or not args.password:
        print('email and password are required (--email/--password or SUPERADMIN_EMAIL/SUPERADMIN_PASSWORD)')
        return 2
    if not is_valid_password(args.password):
        print('password does not satisfy the password policy')
        return 2

    init_db()
    with Session(engine) as session:
        user, created = ensure_superadmin(session, args.username, args.email, args.password)
    if created:
        print(f"superadmin created: {user.username}")
    else:
        print(f"superadmin already exists: {user.username}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
