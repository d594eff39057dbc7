"""Create a user (an admin by default) in the portfolio DB.

Usage:
  python scripts/create_user.py --email admin@example.com --password '...' [--name 'Admin User'] [--role user]

An existing account with the same email is left untouched.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from portfolio_api.config import load_config
from portfolio_api.db import init_db, connect
from portfolio_api.auth.crud import create_user, get_user_by_email, public_user


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--name", default="Admin User")
    ap.add_argument("--role", choices=["user", "admin"], default="admin")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    with connect(cfg.DB_DSN) as conn:
        existing = get_user_by_email(conn, args.email)
        if existing is not None:
            u = public_user(existing)
            print(f"User already exists: email={u['email']} role={u['role']}")
            return
        u = create_user(conn, name=args.name, email=args.email, password=args.password, role=args.role)

    print("Created user:")
    print(u)
    print("Change the password after the first sign-in.")


if __name__ == "__main__":
    main()
