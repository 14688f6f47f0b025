from __future__ import annotations

import argparse
import getpass
import logging
import sys
from dataclasses import replace

from snappass.errors import AuthenticationError, MalformedInputError
from snappass.models import TimeToLive
from snappass.settings import Settings
from vault.service import SecretService, build_store, generate_password
from vault.sqlite_store import SqliteStore, build_engine

TTL_CHOICES = [t.value for t in TimeToLive]


def load_settings(args) -> Settings:
    settings = Settings.load()
    if getattr(args, "database_url", None):
        settings = replace(settings, STORE="sqlite", DATABASE_URL=args.database_url)
    return settings

def read_secret(args) -> str:
    if args.password is not None:
        return args.password
    if sys.stdin.isatty():
        return getpass.getpass("Secret: ")
    return sys.stdin.read().rstrip("\n")

def cmd_init_db(args) -> int:
    """Create the Secret table in the durable store."""
    settings = load_settings(args)
    store = SqliteStore(build_engine(settings.DATABASE_URL))
    store.create_schema()
    print(f"✅ Secret table ready at {settings.DATABASE_URL}")
    return 0

def cmd_set(args) -> int:
    settings = load_settings(args)
    if settings.STORE != "sqlite":
        print("❌ The in-memory store does not outlive this command. Use --database-url or SNAPPASS_STORE=sqlite.")
        return 2

    secret = read_secret(args)
    if not secret:
        print("❌ Refusing to store an empty secret.")
        return 2

    service = SecretService(build_store(settings))
    token = service.set_secret(secret, args.ttl or settings.DEFAULT_TTL)
    if settings.BASE_URL:
        print(f"{settings.BASE_URL}/{token}")
    else:
        print(token)
    return 0

def cmd_get(args) -> int:
    settings = load_settings(args)
    service = SecretService(build_store(settings))
    try:
        secret = service.get_secret(args.token)
    except (MalformedInputError, AuthenticationError):
        secret = None

    if secret is None:
        print("❌ Secret not found or expired", file=sys.stderr)
        return 1
    print(secret)
    return 0

def cmd_purge_expired(args) -> int:
    settings = load_settings(args)
    store = build_store(settings)
    removed = store.purge_expired()
    print(f"🗑️  Purged {removed} expired secret(s)")
    return 0

def cmd_generate_password(args) -> int:
    print(generate_password(args.length))
    return 0

def cmd_serve(args) -> int:
    from api.server import create_app

    app = create_app(load_settings(args))
    app.run(host=args.host, port=args.port)
    return 0

def main() -> None:
    p = argparse.ArgumentParser(prog="snappass")
    sub = p.add_subparsers(dest="cmd", required=True)

    # init-db
    i = sub.add_parser("init-db", help="Create the durable Secret table")
    i.add_argument("--database-url", help="SQLAlchemy URL (default: SNAPPASS_DATABASE_URL)")
    i.set_defaults(func=cmd_init_db)

    # set
    s = sub.add_parser("set", help="Store a secret and print its one-time token")
    s.add_argument("--password", help="Secret to share (default: read from stdin)")
    s.add_argument("--ttl", choices=TTL_CHOICES, help="Time to live (default: SNAPPASS_DEFAULT_TTL)")
    s.add_argument("--database-url", help="SQLAlchemy URL of the durable store")
    s.set_defaults(func=cmd_set)

    # get
    g = sub.add_parser("get", help="Reveal a secret (consumes it)")
    g.add_argument("token")
    g.add_argument("--database-url", help="SQLAlchemy URL of the durable store")
    g.set_defaults(func=cmd_get)

    # purge-expired
    pe = sub.add_parser("purge-expired", help="Delete every expired secret")
    pe.add_argument("--database-url", help="SQLAlchemy URL of the durable store")
    pe.set_defaults(func=cmd_purge_expired)

    # generate-password
    gp = sub.add_parser("generate-password", help="Print a random password")
    gp.add_argument("--length", type=int, default=24)
    gp.set_defaults(func=cmd_generate_password)

    # serve
    sv = sub.add_parser("serve", help="Run the HTTP API")
    sv.add_argument("--host", default="127.0.0.1")
    sv.add_argument("--port", type=int, default=8080)
    sv.add_argument("--database-url", help="SQLAlchemy URL of the durable store")
    sv.set_defaults(func=cmd_serve)

    args = p.parse_args()
    logging.basicConfig(
        level=Settings.load().LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    raise SystemExit(args.func(args))

if __name__ == "__main__":
    main()
