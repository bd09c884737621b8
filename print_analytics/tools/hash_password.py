"""
Generate (or check) the bcrypt hash used for ADMIN_PASSWORD_HASH

Usage:
    print-analytics-hash-password [password]
    print-analytics-hash-password --verify HASH [password]
"""

import argparse
import getpass
import sys
from typing import List, Optional

import bcrypt

DEFAULT_ROUNDS = 10


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _prompt_password(confirm: bool) -> str:
    password = getpass.getpass("Enter the admin password: ")
    if confirm and getpass.getpass("Confirm the admin password: ") != password:
        raise SystemExit("Passwords do not match")
    return password


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Hash the admin password for ADMIN_PASSWORD_HASH")
    parser.add_argument("password", nargs="?", help="Password to hash (prompted when omitted)")
    parser.add_argument("--rounds", type=int, default=DEFAULT_ROUNDS, help="bcrypt cost factor")
    parser.add_argument("--verify", metavar="HASH", help="Check the password against an existing hash")
    args = parser.parse_args(argv)

    password = args.password or _prompt_password(confirm=args.verify is None)
    if not password:
        print("Password must not be empty", file=sys.stderr)
        return 1

    if args.verify:
        if verify_password(password, args.verify):
            print("Password matches hash")
            return 0
        print("Password does NOT match hash", file=sys.stderr)
        return 1

    password_hash = hash_password(password, rounds=args.rounds)
    print("Copy this line to your .env file:")
    print(f"ADMIN_PASSWORD_HASH={password_hash}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
