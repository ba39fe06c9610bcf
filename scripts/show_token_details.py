"""Print the credential state of every stored Jira account.

Tokens themselves are never printed.

Usage:
  python scripts/show_token_details.py [--db ./jiramirror.db] [--active-only]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


def _format_countdown(seconds: int | None) -> str:
    if seconds is None:
        return "unknown"
    if seconds <= 0:
        return f"expired {abs(seconds) // 60} min ago"
    hours, rest = divmod(seconds, 3600)
    return f"{hours}h {rest // 60}m left"


def main() -> int:
    parser = argparse.ArgumentParser(description="Show Jira account token details")
    parser.add_argument("--db", default=None, help="SQLite DB file (default: DATABASE_URL from settings)")
    parser.add_argument("--active-only", action="store_true", help="Hide deactivated accounts")
    args = parser.parse_args()

    from jiramirror.config import Settings  # noqa: WPS433
    from jiramirror.models.base import Store  # noqa: WPS433
    from jiramirror.services.token_manager import TokenLifecycleManager  # noqa: WPS433

    settings = Settings()
    if args.db:
        settings = Settings(database_url=f"sqlite:///{Path(args.db).expanduser().resolve()}")
    store = Store(settings.database_url)
    try:
        store.init_schema()
        tokens = TokenLifecycleManager(store, settings)
        accounts = tokens.list_accounts(active_only=args.active_only)
        if not accounts:
            print("No accounts stored.")
            return 1
        for account in accounts:
            status = tokens.token_status(account)
            flags = ["PRIMARY"] if account.is_primary else []
            if not account.is_active:
                flags.append("INACTIVE")
            print(f"[{account.id}] {account.account_name} <{account.account_email or '-'}> {' '.join(flags)}")
            print(f"    site:             {account.jira_domain or '-'} ({account.cloud_id or 'unresolved'})")
            print(f"    state:            {status['state']}")
            print(f"    expires at:       {status['expires_at'] or '-'} ({_format_countdown(status['seconds_until_expiry'])})")
            print(f"    last refresh:     {status['last_refresh_at'] or '-'}")
            print(f"    refresh failures: {status['refresh_failures']}")
            print(f"    refresh token:    {'yes' if status['has_refresh_token'] else 'no'}")
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
