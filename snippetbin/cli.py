"""
snippetbin — Command-Line Entry Point
=======================================

What:  The `snippetbin` command: parse --addr, configure logging, serve.
How:   argparse for the single flag, uvicorn for the HTTP/1.1 listener.
When:  Process start.

Exit codes:
    0  clean shutdown (SIGINT/SIGTERM)
    2  malformed --addr (argparse usage error)
    nonzero (uvicorn's startup-failure code) when the store cannot be opened
    or the listener cannot bind
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

import uvicorn

from snippetbin import __version__
from snippetbin.config import settings
from snippetbin.main import create_app, setup_logging

logger = logging.getLogger(__name__)


def parse_addr(value: str) -> Tuple[str, int]:
    """
    Split "host:port" into its parts.

    IPv6 hosts may be written in brackets ("[::1]:8080"); the brackets are
    stripped. Raises argparse.ArgumentTypeError on anything else.
    """
    host, sep, port_text = value.rpartition(":")
    if not sep or not host or not port_text.isdigit():
        raise argparse.ArgumentTypeError(f"invalid address '{value}', expected host:port")

    port = int(port_text)
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"invalid port {port} in '{value}'")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snippetbin",
        description="Serve the snippet REST API backed by ./snippetbin.db.",
    )
    parser.add_argument(
        "--addr",
        type=parse_addr,
        default=settings.addr,
        help="http service address (default: %(default)s)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    # argparse converts string defaults through `type` as well
    host, port = args.addr

    setup_logging(settings.log_level)
    logger.info("Listening on http://%s:%d", host, port)

    # uvicorn exits the process itself with a nonzero code when startup or
    # binding fails, so reaching the return means a clean shutdown
    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        lifespan="on",
        log_config=None,
        access_log=False,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
