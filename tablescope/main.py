from __future__ import annotations

import argparse
import logging
from typing import Optional

import uvicorn

from . import __version__
from .config import get_settings, update_settings
from .engine import MetadataError, load_roles
from .repositories import DatasetRepository
from .services import ExplorerService
from .terminal import TerminalBrowser

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format="%(asctime)s:%(levelname)s:%(name)s: %(message)s",
        force=True,
    )


def _parse_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise argparse.ArgumentTypeError(f"Expected HOST:PORT, got {addr!r}")
    return host or "127.0.0.1", int(port)


def build_parser() -> argparse.ArgumentParser:
    s = get_settings()
    parser = argparse.ArgumentParser(
        prog="tablescope",
        description="Browse, search and summarise a read-only SQLite dataset.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", default=s.db_path, help="Path to the SQLite dataset (default: DB_PATH)")
    parser.add_argument("--mode", choices=["web", "tui"], default="web", help="Serve the HTTP API or run the terminal browser")
    parser.add_argument("--addr", type=_parse_addr, default=(s.host, s.port), help="HOST:PORT to listen on in web mode")
    parser.add_argument("--roles", default=s.roles_config, help="YAML file with column role candidates")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def run_web(host: str, port: int) -> int:
    logger.info("Serving %s on http://%s:%d", get_settings().db_path, host, port)
    uvicorn.run("tablescope.app:app", host=host, port=int(port), log_level="info")
    return 0


def run_tui() -> int:
    s = get_settings()
    try:
        repo = DatasetRepository.open(s.db_path)
    except MetadataError as exc:
        logger.error("%s", exc)
        return 1
    try:
        service = ExplorerService(repo, per_page=s.per_page, chart_limit=s.chart_limit, roles=load_roles(s.roles_config))
        TerminalBrowser(service).run()
    finally:
        repo.close()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=bool(args.verbose), level=get_settings().log_level)
    host, port = args.addr
    update_settings({"db_path": args.db, "roles_config": args.roles, "host": host, "port": port})
    if args.mode == "tui":
        return run_tui()
    return run_web(host, port)


if __name__ == "__main__":
    raise SystemExit(main())
