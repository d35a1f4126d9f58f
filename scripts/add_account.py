#!/usr/bin/env python3
"""
Create an account directly in the database, optionally marking it as a barber.

Usage:
  python scripts/add_account.py --email someone@example.com [--password secret1] [--provider]
"""
from __future__ import annotations

import argparse
import secrets
import sys

from marketplace.core.logs import configure_logging
from marketplace.db.create_tables import create_all
from marketplace.services.account_service import AccountService
from marketplace.services.session_service import InMemorySessionStore


def gen_password(length: int = 12) -> str:
    return secrets.token_urlsafe(length)[:length]


def main() -> None:
    ap = argparse.ArgumentParser(description="Create a marketplace account")
    ap.add_argument("--email", required=True, help="Account e-mail (stored lowercased)")
    ap.add_argument("--password", help="Password (default: random, printed once)")
    ap.add_argument("--provider", action="store_true", help="Mark the account as a service provider")
    args = ap.parse_args()

    configure_logging()
    create_all()
    # Sessions are not needed here, so keep them out of the database.
    svc = AccountService(sessions=InMemorySessionStore())
    password = (args.password or "").strip() or gen_password()

    result = svc.signup(args.email, password)
    if not result.ok:
        raise SystemExit(f"Could not create account ({result.error.value}): {result.reason}")
    if args.provider:
        result = svc.update_profile(args.email, {"is_service_provider": True})
        if not result.ok:
            raise SystemExit(f"Account created but not marked as provider: {result.reason}")

    print("OK: account created")
    print(f"  Email: {args.email.strip().lower()}")
    if not args.password:
        print(f"  Password: {password}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
