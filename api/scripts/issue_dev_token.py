#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Development helper for JWT keys and access tokens.

    python scripts/issue_dev_token.py keys
    python scripts/issue_dev_token.py token --role SPPG_KEPALA --sppg-id <id>

Tokens are signed with JWT_PRIVATE_KEY, so export the pair printed by
``keys`` before starting the API.
"""

import sys
import os
import argparse
from bson import ObjectId

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.enums import UserRole
from services.auth import AuthService, generate_key_pair


def print_keys():
    private_pem, public_pem = generate_key_pair()
    newline = "\\n"
    print(f'JWT_PRIVATE_KEY="{private_pem.replace(chr(10), newline)}"')
    print(f'JWT_PUBLIC_KEY="{public_pem.replace(chr(10), newline)}"')


def print_token(args) -> int:
    if not os.getenv("JWT_PRIVATE_KEY"):
        print("JWT_PRIVATE_KEY is not set; run the 'keys' command first", file=sys.stderr)
        return 1

    # Keys pasted from .env files keep their escaped newlines
    private_key = os.environ["JWT_PRIVATE_KEY"].replace("\\n", "\n")
    public_key = os.getenv("JWT_PUBLIC_KEY", "").replace("\\n", "\n")
    service = AuthService(private_key, public_key, access_token_expire_minutes=args.minutes)

    token = service.issue_access_token(
        user_id=args.user_id or str(ObjectId()),
        role=args.role,
        sppg_id=args.sppg_id,
        email=args.email,
        name=args.name
    )
    claims = service.validate_token(token["access_token"])

    print(token["access_token"])
    print(f"role={claims['role']} sppg_id={claims.get('sppg_id')} expires_at={token['expires_at']}",
          file=sys.stderr)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Bagizi SPPG development tokens")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("keys", help="print a fresh RS256 key pair as environment variables")

    token_parser = commands.add_parser("token", help="issue an access token")
    token_parser.add_argument("--role", default=UserRole.SPPG_KEPALA.value,
                              choices=[role.value for role in UserRole])
    token_parser.add_argument("--sppg-id")
    token_parser.add_argument("--user-id")
    token_parser.add_argument("--email", default="dev@bagizi.id")
    token_parser.add_argument("--name", default="Developer")
    token_parser.add_argument("--minutes", type=int, default=60)

    args = parser.parse_args(argv)

    if args.command == "keys":
        print_keys()
        return 0
    return print_token(args)


if __name__ == "__main__":
    sys.exit(main())
