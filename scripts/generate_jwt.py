from __future__ import annotations

import argparse
from datetime import datetime, timedelta, timezone

import jwt

KNOWN_ROLES = ("recruiter", "admin", "service")


def build_payload(subject: str, roles: list[str], hours: int) -> dict:
    unknown = sorted(set(roles) - set(KNOWN_ROLES))
    if unknown:
        raise SystemExit(f"unknown roles: {', '.join(unknown)}")
    return {
        "sub": subject,
        "roles": roles,
        "exp": datetime.now(timezone.utc) + timedelta(hours=hours),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Mint a role-bearing JWT for the ATS API.")
    parser.add_argument("--secret", required=True)
    parser.add_argument("--subject", default="local-recruiter")
    parser.add_argument(
        "--roles",
        default="recruiter",
        help=f"Comma-separated roles ({', '.join(KNOWN_ROLES)}).",
    )
    parser.add_argument("--hours", type=int, default=8)
    parser.add_argument("--algorithm", default="HS256")
    args = parser.parse_args()

    roles = [item.strip() for item in args.roles.split(",") if item.strip()]
    token = jwt.encode(
        build_payload(args.subject, roles, args.hours), args.secret, algorithm=args.algorithm
    )
    print(token)


if __name__ == "__main__":
    main()
