from __future__ import annotations

import argparse
from datetime import timedelta
from typing import Optional

from sqlmodel import Session

from app.db.session import engine
from app.models.base import utc_now
from app.services.refresh_token_service import purge_expired


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Delete refresh tokens that expired more than N days ago.')
    parser.add_argument('--retention-days', type=int, default=30)
    args = parser.parse_args(argv)
    if args.retention_days < 0:
        print('--retention-days must be >= 0')
        return 2

    cutoff = utc_now() - timedelta(days=args.retention_days)
    with Session(engine) as session:
        deleted = purge_expired(session, cutoff)
    print(f"purged refresh tokens: deleted={deleted} cutoff={cutoff.isoformat()}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
