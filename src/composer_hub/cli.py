"""Command line entrypoint for composer-hub."""

from __future__ import annotations

import argparse
import errno
import logging
import socket
import sys
from pathlib import Path
from typing import Final, Optional, Sequence

DEFAULT_LOG_LEVEL: Final[str] = "info"
LOG_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
PORT_IN_USE_MESSAGE: Final[str] = (
    "composer-hub failed to start: {host}:{port} is already in use.\n"
    "Stop the conflicting process or choose another port via --port or "
    "COMPOSER_HUB_API_PORT."
)
WINDOWS_IN_USE_ERRORS: Final[set[int]] = {10013, 10048}
LOG_LEVELS: Final[list[str]] = ["critical", "error", "warning", "info", "debug", "trace"]

LOGGER = logging.getLogger(__name__)


def _root_level(log_level: str) -> int:
    if log_level == "trace":
        # Uvicorn treats "trace" as the most verbose level; map to DEBUG for stdlib logging.
        return logging.DEBUG
    return getattr(logging, log_level.upper(), logging.INFO)


def configure_logging(log_level: str) -> int:
    root_level = _root_level(log_level)
    logging.basicConfig(level=root_level, format=LOG_FORMAT)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(root_level)
    return root_level


def _port_in_use(exc: OSError) -> bool:
    if exc.errno == errno.EADDRINUSE:
        return True
    winerror = getattr(exc, "winerror", None)
    if isinstance(winerror, int) and winerror in WINDOWS_IN_USE_ERRORS:
        return True
    return False


def ensure_port_available(host: str, port: int) -> None:
    try:
        addr_info = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as exc:
        raise SystemExit(f"Unable to resolve host '{host}': {exc}") from exc

    last_error: OSError | None = None
    for family, socktype, proto, _, sockaddr in addr_info:
        try:
            with socket.socket(family, socktype, proto) as test_sock:
                test_sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                test_sock.bind(sockaddr)
        except OSError as exc:
            last_error = exc
            if _port_in_use(exc):
                raise SystemExit(PORT_IN_USE_MESSAGE.format(host=host, port=port)) from exc
            continue
        else:
            return

    if last_error is not None:
        raise SystemExit(
            f"Unable to validate port availability for {host}:{port}: {last_error}"
        ) from last_error
    raise SystemExit(f"No suitable address family found for {host}:{port}.")


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    from composer_hub.config.settings import get_api_settings

    api_settings = get_api_settings()
    host = args.host or api_settings.host
    port = args.port or api_settings.port
    reload = args.reload or api_settings.reload
    log_level = (args.log_level or api_settings.log_level or DEFAULT_LOG_LEVEL).lower()
    configure_logging(log_level)

    ensure_port_available(host, port)

    uvicorn.run(
        "composer_hub.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level if log_level != "trace" else "debug",
        log_config=None,
    )
    return 0


def _load_service():
    from composer_hub.services.repository_service import RepositoryService

    return RepositoryService.from_settings()


def build_index(args: argparse.Namespace) -> int:
    service = _load_service()
    output = Path(args.output)
    document = service.write_index(output)
    print(f"Wrote {len(document['packages'])} packages to {output}")
    return 0


def archive(args: argparse.Namespace) -> int:
    from composer_hub.exceptions import ComposerHubError

    service = _load_service()
    try:
        release = service.get_release(args.slug, args.version, kind=args.kind)
        if release is None:
            print(f"Package '{args.slug}' not found.", file=sys.stderr)
            return 1
        file = service.archive(release)
    except ComposerHubError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    print(f"Archived {release} to {file}")
    return 0


def create_key(args: argparse.Namespace) -> int:
    from composer_hub.repo.api_keys import create_api_key

    api_key = create_api_key(args.user, name=args.name or "")
    print(f"Created API key {api_key.id} for '{api_key.user_id}': {api_key.token}")
    return 0


def list_keys(args: argparse.Namespace) -> int:
    from composer_hub.repo.api_keys import list_api_keys

    for api_key in list_api_keys(args.user):
        last_used = api_key.last_used_at.isoformat() if api_key.last_used_at else "never"
        print(f"{api_key.id}\t{api_key.user_id}\t{api_key.name}\t{last_used}")
    return 0


def revoke_key(args: argparse.Namespace) -> int:
    from composer_hub.repo.api_keys import revoke_api_key

    if not revoke_api_key(args.key_id):
        print(f"API key '{args.key_id}' not found.", file=sys.stderr)
        return 1
    print(f"Revoked API key {args.key_id}")
    return 0


def migrate(args: argparse.Namespace) -> int:
    from composer_hub.db.migrations import upgrade_database

    upgrade_database()
    print("Database is up to date.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="composer-hub",
        description="Serve plugins and themes as a Composer repository.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the repository API.")
    serve_parser.add_argument("--host", default=None, help="Bind address (overrides settings/env).")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (overrides settings/env).",
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable uvicorn auto-reload (overrides settings/env).",
    )
    serve_parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Log level for composer-hub and uvicorn output (overrides settings/env).",
    )
    serve_parser.set_defaults(func=serve)

    index_parser = subparsers.add_parser("build-index", help="Build every artifact and write packages.json.")
    index_parser.add_argument("--output", required=True, help="Where to write packages.json.")
    index_parser.set_defaults(func=build_index)

    archive_parser = subparsers.add_parser("archive", help="Rebuild the artifact of one release.")
    archive_parser.add_argument("slug")
    archive_parser.add_argument("version")
    archive_parser.add_argument("--kind", choices=["plugin", "theme"], default=None)
    archive_parser.set_defaults(func=archive)

    create_parser = subparsers.add_parser("create-key", help="Create an API key for a user.")
    create_parser.add_argument("user")
    create_parser.add_argument("--name", default="")
    create_parser.set_defaults(func=create_key)

    list_parser = subparsers.add_parser("list-keys", help="List API keys.")
    list_parser.add_argument("--user", default=None)
    list_parser.set_defaults(func=list_keys)

    revoke_parser = subparsers.add_parser("revoke-key", help="Revoke an API key.")
    revoke_parser.add_argument("key_id")
    revoke_parser.set_defaults(func=revoke_key)

    migrate_parser = subparsers.add_parser("migrate", help="Apply database migrations.")
    migrate_parser.set_defaults(func=migrate)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command != "serve":
        configure_logging("warning")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
