# scripts/hash_password.py
# Purpose: Print a bcrypt hash for seeding the users table (password_hash column).
#
# Usage:
#   python scripts/hash_password.py              # prompts, no echo
#   python scripts/hash_password.py 'secret' --rounds 12

import argparse
import getpass
import sys
from typing import List, Optional

import bcrypt

DEFAULT_ROUNDS = 10


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    if not password:
        raise ValueError("password must be non-empty")
    # bcrypt only looks at the first 72 bytes
    secret = password.encode("utf-8")[:72]
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Print a bcrypt hash for a password.")
    parser.add_argument("password", nargs="?", help="plaintext (prompted when omitted)")
    parser.add_argument("--rounds", type=int, default=DEFAULT_ROUNDS, help="bcrypt cost factor (4-31)")
    args = parser.parse_args(argv)

    if not 4 <= args.rounds <= 31:
        parser.error("--rounds must be between 4 and 31")

    password = args.password if args.password is not None else getpass.getpass("Password: ")
    try:
        print(hash_password(password, rounds=args.rounds))
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
