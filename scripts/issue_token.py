"""Issue a development bearer token.

Usage:
    python -m scripts.issue_token <wallet> [--role indexer] [--minutes 60]

Signs with JWT_SECRET from the environment / .env, so the token is accepted
by a server started with the same settings.
"""

import argparse
from datetime import timedelta

from src.lf_common.enums import PrincipalRole
from src.lf_gateway.auth.jwt_handler import create_access_token


def main(argv: list[str] | None = None) -> str:
    parser = argparse.ArgumentParser(description="Issue a Likeli access token")
    parser.add_argument("wallet", help="wallet address used as the token subject")
    parser.add_argument(
        "--role",
        choices=[r.value for r in PrincipalRole],
        default=PrincipalRole.INVESTOR.value,
    )
    parser.add_argument("--minutes", type=int, default=None, help="lifetime override")
    args = parser.parse_args(argv)

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    token = create_access_token(args.wallet, PrincipalRole(args.role), expires)
    print(token)
    return token


if __name__ == "__main__":
    main()
