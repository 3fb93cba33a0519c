"""
vaultpass CLI: search, read and share Vault secrets from a terminal.

Usage:
    vaultpass login --url https://vault.example.com --username alice
    vaultpass search github
    vaultpass search --domain mail.example.com
    vaultpass get personal/alice/github
    vaultpass watch
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import sys

from vaultpass.config import Config, get_config
from vaultpass.errors import VaultPassError

logger = logging.getLogger(__name__)

WRAP_TTL_MIN_MINUTES = 1
WRAP_TTL_MAX_MINUTES = 24 * 60


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="vaultpass",
        description="vaultpass: find, read and share secrets stored in HashiCorp Vault.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("version", help="Show version")

    # session
    login_parser = subparsers.add_parser("login", help="Log in and store the session token")
    login_parser.add_argument("--url", help="Vault URL (default: $VAULTPASS_URL)")
    login_parser.add_argument("--username", "-u", required=True, help="Vault username")
    login_parser.add_argument("--password", help="Password (prompted when omitted)")
    login_parser.add_argument("--method", help="Auth method (default: $VAULTPASS_AUTH_METHOD or ldap)")

    subparsers.add_parser("logout", help="Revoke the session token")
    subparsers.add_parser("status", help="Show session status")
    subparsers.add_parser("watch", help="Keep the session alive, renewing the token before it expires")

    # secrets
    search_parser = subparsers.add_parser("search", help="Search secrets across all KV engines")
    search_parser.add_argument("terms", nargs="*", help="Search terms (none lists everything)")
    search_parser.add_argument("--domain", help="Search a hostname and its parent domains")
    search_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    get_parser = subparsers.add_parser("get", help="Print a secret's data")
    get_parser.add_argument("path", help="engine/path/name")
    get_parser.add_argument("--raw", action="store_true", help="Do not decrypt sensitive fields")

    put_parser = subparsers.add_parser("put", help="Create or update a secret")
    put_parser.add_argument("path", help="engine/path/name")
    put_parser.add_argument("pairs", nargs="+", metavar="KEY=VALUE", help="Secret data")

    delete_parser = subparsers.add_parser("delete", help="Delete a secret")
    delete_parser.add_argument("path", help="engine/path/name")

    # sharing
    wrap_parser = subparsers.add_parser("wrap", help="Wrap data behind a single-use token")
    wrap_parser.add_argument("data", help="JSON object to wrap")
    wrap_parser.add_argument("--ttl", type=int, default=30, help="Token lifetime in minutes (1-1440)")

    unwrap_parser = subparsers.add_parser("unwrap", help="Read data behind a wrapping token")
    unwrap_parser.add_argument("token", help="Wrapping token")

    # tools
    encrypt_parser = subparsers.add_parser("encrypt", help="Encrypt a value")
    encrypt_parser.add_argument("value")
    encrypt_parser.add_argument("--salt", required=True, help="Salt, usually the secret's full name")

    decrypt_parser = subparsers.add_parser("decrypt", help="Decrypt a value in any supported format")
    decrypt_parser.add_argument("value")
    decrypt_parser.add_argument("--salt", required=True, help="Salt, usually the secret's full name")

    gen_parser = subparsers.add_parser("generate", help="Generate a random password")
    gen_parser.add_argument("--size", type=int, default=20, help="Length (1-100)")
    gen_parser.add_argument("--no-numbers", action="store_true", help="Exclude digits")
    gen_parser.add_argument("--no-lowercase", action="store_true", help="Exclude lowercase letters")
    gen_parser.add_argument("--no-uppercase", action="store_true", help="Exclude uppercase letters")
    gen_parser.add_argument("--no-special", action="store_true", help="Exclude special characters")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from vaultpass import __version__

        print(f"vaultpass {__version__}")
        return 0

    cfg = get_config()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.WARNING),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    commands = {
        "login": _cmd_login,
        "logout": _cmd_logout,
        "status": _cmd_status,
        "watch": _cmd_watch,
        "search": _cmd_search,
        "get": _cmd_get,
        "put": _cmd_put,
        "delete": _cmd_delete,
        "wrap": _cmd_wrap,
        "unwrap": _cmd_unwrap,
        "encrypt": _cmd_encrypt,
        "decrypt": _cmd_decrypt,
        "generate": _cmd_generate,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        return handler(args, cfg)
    except VaultPassError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


# ── Wiring ────────────────────────────────────────────────────────────


def _store(cfg: Config):
    from vaultpass.session.store import SessionStore

    return SessionStore(cfg.session.store_path)


def _make_client(cfg: Config, url: str, token=None):
    from vaultpass.vault.client import VaultClient

    return VaultClient(
        url,
        token,
        timeout=cfg.vault.timeout,
        verify=cfg.vault.verify_tls,
        personal_engines=cfg.search.personal_engines,
    )


def _manager(cfg: Config, scheduler=None):
    from vaultpass.session.lifecycle import TokenLifecycleManager

    return TokenLifecycleManager(
        _store(cfg),
        lambda url, token: _make_client(cfg, url, token),
        cfg.session,
        scheduler=scheduler,
    )


def _session_client(cfg: Config):
    """Client for the stored session. Raises AuthInvalid without a usable token."""
    from vaultpass.errors import AuthInvalid
    from vaultpass.vault.paths import is_token_valid

    store = _store(cfg)
    token = store.token
    if not store.url or not is_token_valid(token):
        raise AuthInvalid("Not logged in. Run 'vaultpass login' first.")
    return _make_client(cfg, store.url, token), store


async def _find_engine(client, engine_name: str):
    from vaultpass.errors import NotFound

    for engine in await client.list_engines():
        if engine.name.lower() == engine_name.lower():
            return engine
    raise NotFound(404, f"Secret engine not found: {engine_name}")


def _parse_path(value: str) -> tuple[str, list[str]]:
    from vaultpass.errors import InvalidArgument
    from vaultpass.vault.paths import parse_secret_path, split_secret_path

    parsed = parse_secret_path(value)
    if parsed is None:
        raise InvalidArgument(f"Expected engine/path/name, got: {value}")
    engine_name, path, name = parsed
    return engine_name, split_secret_path(path, name)


# ── Session commands ──────────────────────────────────────────────────


def _cmd_login(args: argparse.Namespace, cfg: Config) -> int:
    from vaultpass.errors import InvalidArgument

    url = (args.url or cfg.vault.url).rstrip("/")
    if not url:
        raise InvalidArgument("Vault URL is required (--url or VAULTPASS_URL)")
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    method = args.method or cfg.vault.auth_method

    manager = _manager(cfg)
    token = asyncio.run(manager.login(url, args.username, password, method))
    print(f"Logged in to {url} as {args.username}")
    print(f"Token expires {token.expire_date:%Y-%m-%d %H:%M:%S} UTC")
    return 0


def _cmd_logout(args: argparse.Namespace, cfg: Config) -> int:
    asyncio.run(_manager(cfg).logout())
    print("Logged out")
    return 0


def _cmd_status(args: argparse.Namespace, cfg: Config) -> int:
    from vaultpass.errors import InvalidTokenDetails
    from vaultpass.vault.paths import is_token_valid

    store = _store(cfg)
    print(f"  Vault:     {store.url or '(not set)'}")
    print(f"  User:      {store.username or '(not set)'}")
    try:
        token = store.token
    except InvalidTokenDetails as e:
        print(f"  Token:     invalid ({e})")
        return 1
    if token is None:
        print("  Token:     none")
        return 1
    state = "valid" if is_token_valid(token) else "expired"
    print(f"  Token:     {state}, expires {token.expire_date:%Y-%m-%d %H:%M:%S} UTC")
    return 0 if state == "valid" else 1


def _cmd_watch(args: argparse.Namespace, cfg: Config) -> int:
    async def run() -> None:
        manager = _manager(cfg)
        manager.start()
        try:
            state = await manager.on_startup()
            print(f"Session {state}; checking every {cfg.session.check_interval_minutes} minutes at most")
            await asyncio.Event().wait()
        finally:
            manager.shutdown()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
    return 0


# ── Secret commands ───────────────────────────────────────────────────


def _cmd_search(args: argparse.Namespace, cfg: Config) -> int:
    from vaultpass.vault.search import SearchCoordinator

    client, store = _session_client(cfg)

    async def run():
        async with client:
            coordinator = SearchCoordinator(
                client,
                engine_concurrency=cfg.search.engine_concurrency,
                case_sensitive=cfg.search.case_sensitive,
            )
            if args.domain:
                return await coordinator.search_domain(store.username or "", args.domain)
            return await coordinator.search(store.username or "", args.terms)

    report = asyncio.run(run())

    if args.json:
        print(
            json.dumps(
                {
                    "secrets": [s.full_name for s in report.secrets],
                    "errors": [
                        {"kind": str(e.kind), "engine": e.engine, "path": e.path, "reason": e.reason}
                        for e in report.errors
                    ],
                },
                indent=2,
            )
        )
    else:
        for secret in report.secrets:
            print(secret.full_name)
        if report.errors:
            print(f"\n{len(report.errors)} path(s) could not be searched:", file=sys.stderr)
            for e in report.errors:
                print(f"  [{e.kind}] {e.engine}{e.path}: {e.reason}", file=sys.stderr)
    return 0


def _cmd_get(args: argparse.Namespace, cfg: Config) -> int:
    from vaultpass.crypto import decrypt_fields
    from vaultpass.errors import NotFound
    from vaultpass.vault.paths import secret_full_path

    engine_name, segments = _parse_path(args.path)
    client, _ = _session_client(cfg)

    async def run():
        async with client:
            engine = await _find_engine(client, engine_name)
            return engine, await client.read_secret(engine, segments)

    engine, data = asyncio.run(run())
    if data is None:
        raise NotFound(404, f"Secret not found: {args.path}")
    if not args.raw:
        data = decrypt_fields(data, secret_full_path(engine.name, segments))
    print(json.dumps(data, indent=2))
    return 0


def _cmd_put(args: argparse.Namespace, cfg: Config) -> int:
    from vaultpass.crypto import encrypt_fields
    from vaultpass.errors import InvalidArgument
    from vaultpass.vault.paths import secret_full_path

    data = {}
    for pair in args.pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise InvalidArgument(f"Expected KEY=VALUE, got: {pair}")
        data[key] = value

    engine_name, segments = _parse_path(args.path)
    client, _ = _session_client(cfg)

    async def run():
        async with client:
            engine = await _find_engine(client, engine_name)
            sealed = encrypt_fields(data, secret_full_path(engine.name, segments))
            await client.write_secret(engine, segments, sealed)
            return engine

    engine = asyncio.run(run())
    print(f"Saved {secret_full_path(engine.name, segments)}")
    return 0


def _cmd_delete(args: argparse.Namespace, cfg: Config) -> int:
    engine_name, segments = _parse_path(args.path)
    client, _ = _session_client(cfg)

    async def run():
        async with client:
            engine = await _find_engine(client, engine_name)
            await client.delete_secret(engine, segments)

    asyncio.run(run())
    print(f"Deleted {args.path}")
    return 0


# ── Sharing ───────────────────────────────────────────────────────────


def _cmd_wrap(args: argparse.Namespace, cfg: Config) -> int:
    from vaultpass.errors import InvalidArgument

    if not WRAP_TTL_MIN_MINUTES <= args.ttl <= WRAP_TTL_MAX_MINUTES:
        raise InvalidArgument(f"TTL must be between {WRAP_TTL_MIN_MINUTES} and {WRAP_TTL_MAX_MINUTES} minutes")
    try:
        data = json.loads(args.data)
    except ValueError:
        raise InvalidArgument("Data to wrap must be a JSON object") from None
    if not isinstance(data, dict):
        raise InvalidArgument("Data to wrap must be a JSON object")

    client, _ = _session_client(cfg)

    async def run():
        async with client:
            return await client.wrap(data, f"{args.ttl}m")

    print(asyncio.run(run()))
    return 0


def _cmd_unwrap(args: argparse.Namespace, cfg: Config) -> int:
    client, _ = _session_client(cfg)

    async def run():
        async with client:
            return await client.unwrap(args.token)

    print(json.dumps(asyncio.run(run()), indent=2))
    return 0


# ── Offline tools ─────────────────────────────────────────────────────


def _cmd_encrypt(args: argparse.Namespace, cfg: Config) -> int:
    from vaultpass.crypto import encrypt

    print(encrypt(args.value, args.salt))
    return 0


def _cmd_decrypt(args: argparse.Namespace, cfg: Config) -> int:
    from vaultpass.crypto import decrypt

    print(decrypt(args.value, args.salt))
    return 0


def _cmd_generate(args: argparse.Namespace, cfg: Config) -> int:
    from vaultpass.password import generate

    print(
        generate(
            use_numbers=not args.no_numbers,
            use_lowercase=not args.no_lowercase,
            use_uppercase=not args.no_uppercase,
            use_special=not args.no_special,
            size=args.size,
        )
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
