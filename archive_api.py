"""CLI entry-point to launch the content archive HTTP API."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import uvicorn

from api import __version__ as API_VERSION
from api.server import APIServerConfig, create_app
from archive.errors import StorageError
from archive.store import EntryStore
from core.logging_utils import configure_json_logging
from core.paths import ensure_working_dir_structure, resolve_working_dir
from core.settings import load_settings, resolve_database_path

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_CORS = ["http://localhost", "http://127.0.0.1"]


def _resolve_bind_host(candidate: Optional[str]) -> str:
    host = (candidate or DEFAULT_HOST).strip()
    if not host:
        host = DEFAULT_HOST
    norm = host.lower()
    if norm == "localhost":
        return "127.0.0.1"
    if norm.startswith("::ffff:"):
        norm = norm.split("::ffff:")[-1]
    if norm == "::1":
        return "127.0.0.1"
    if norm.startswith("127."):
        return norm
    raise ValueError(
        f"Refusing to bind API server to non-loopback host '{candidate}'. The archive only serves on localhost."
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Start the content archive API service.")
    parser.add_argument("--host", default=None, help="Bind host (default from settings.json)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default from settings.json)")
    parser.add_argument("--db", dest="db_path", default=None, help="Path to the archive SQLite database")
    parser.add_argument(
        "--cors",
        action="append",
        dest="cors",
        default=None,
        help="Allowed CORS origin (repeatable).",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Also write JSON-lines logs under the working directory.",
    )
    return parser.parse_args(argv)


def resolve_api_settings(args: argparse.Namespace) -> tuple[str, int, List[str], Path, dict]:
    working_dir = resolve_working_dir()
    ensure_working_dir_structure(working_dir)
    settings = load_settings(working_dir)
    api_settings = settings.get("api") if isinstance(settings.get("api"), dict) else {}

    host = _resolve_bind_host(args.host or api_settings.get("host") or DEFAULT_HOST)
    port = args.port or api_settings.get("port") or DEFAULT_PORT
    try:
        port = int(port)
    except (TypeError, ValueError):
        port = DEFAULT_PORT

    if args.cors:
        cors = list(args.cors)
    else:
        cors = list(api_settings.get("cors_origins") or DEFAULT_CORS)

    db_path = Path(args.db_path) if args.db_path else resolve_database_path(settings, working_dir)
    return host, port, cors, db_path, settings


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        host, port, cors, db_path, settings = resolve_api_settings(args)
    except ValueError as exc:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
        logging.error("%s", exc)
        return 2

    log_settings = settings.get("logging") if isinstance(settings.get("logging"), dict) else {}
    level = str(log_settings.get("level") or "INFO").upper()
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")
    if args.json_logs or log_settings.get("json"):
        configure_json_logging(working_dir=Path(settings["working_dir"]), level=level)

    database = settings.get("database") if isinstance(settings.get("database"), dict) else {}
    store = EntryStore(db_path, timeout=float(database.get("timeout_s") or 5.0))
    try:
        store.open()
    except StorageError as exc:
        logging.error("%s", exc)
        return 1

    try:
        app = create_app(APIServerConfig(store=store, cors_origins=cors, app_version=API_VERSION))
        print(f"API listening on http://{host}:{port} (database: {db_path})", flush=True)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=host,
                port=port,
                log_level=level.lower(),
                access_log=False,
            )
        )
        server.run()
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
