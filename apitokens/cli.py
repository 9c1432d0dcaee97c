# apitokens/cli.py
"""Command-line interface for issuing and revoking API tokens.

    apitokens issue admin@example.com --expires "30 days"
    apitokens revoke admin@example.com
    apitokens show admin@example.com --json
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys

from sqlalchemy.exc import SQLAlchemyError

from apitokens.core.config import configure_logging, settings
from apitokens.core.errors import StorageError, TokenIssuanceError
from apitokens.core.expiration import describe, parse_expiration
from apitokens.db.session import create_tables, make_sessionmaker
from apitokens.services.identity_store import IdentityStore, normalize_handle
from apitokens.services.issuance import describe_token, issue_token, revoke_tokens
from apitokens.services.token_issuer import TokenIssuer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="apitokens", description="Manage API tokens")
    parser.add_argument("--database-url", default=settings.db_url, help="SQLAlchemy async URL")
    parser.add_argument("--log-level", default=settings.log_level)
    subparsers = parser.add_subparsers(dest="command", required=True)

    issue_parser = subparsers.add_parser(
        "issue", help="Issue a new token, revoking any previous one"
    )
    issue_parser.add_argument("handle", help="Email or username of the identity")
    issue_parser.add_argument(
        "--expires", default=None,
        help='e.g. "1 hour", "30 days", "2025-12-31"; omit or "never" for no expiration',
    )
    issue_parser.add_argument("--name", default=None, help="Token label")
    issue_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    revoke_parser = subparsers.add_parser("revoke", help="Revoke every token of an identity")
    revoke_parser.add_argument("handle")

    show_parser = subparsers.add_parser("show", help="Show the active token (never its secret)")
    show_parser.add_argument("handle")
    show_parser.add_argument("--json", action="store_true")
    return parser


async def _run(args: argparse.Namespace) -> None:
    # reject bad input before the database is opened or created
    normalize_handle(args.handle)
    if args.command == "issue":
        parse_expiration(args.expires)

    engine, session_factory = make_sessionmaker(args.database_url)
    identities = IdentityStore(session_factory)
    issuer = TokenIssuer(session_factory)
    try:
        try:
            await create_tables(engine)
        except SQLAlchemyError as e:
            raise StorageError(f"cannot prepare database: {e}") from e

        if args.command == "issue":
            issued = await issue_token(
                args.handle, args.expires, args.name, identities=identities, issuer=issuer
            )
            if args.json:
                print(json.dumps(issued.as_payload()))
            else:
                print(f"Token for {issued.identity.handle} (expires: {describe(issued.expires_at)}).")
                print("Copy it now, it will not be shown again:")
                print(issued.token)

        elif args.command == "revoke":
            revoked = await revoke_tokens(args.handle, identities=identities, issuer=issuer)
            print(f"revoked {revoked} token(s)")

        elif args.command == "show":
            info = await describe_token(args.handle, identities=identities, issuer=issuer)
            if args.json:
                print(json.dumps(info))
            elif info is None:
                print("no active token")
            else:
                print(f"token {info['tokenId']} ({info['name']}) issued {info['issuedAt']}, "
                      f"expires {info['expiresAt'] or 'never'}")
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        asyncio.run(_run(args))
    except TokenIssuanceError as e:
        print(f"error[{e.kind}]: {e.message}", file=sys.stderr)
        return e.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
