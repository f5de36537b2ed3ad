"""Command-line interface for the label registry service."""

import argparse
import sys

import uvicorn

from labelregistry import __version__
from labelregistry.logging_config import configure_logging


def main(args: list[str] | None = None) -> int:
    """Run the label registry server.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success).
    """
    parser = argparse.ArgumentParser(
        prog="labelregistry",
        description="Label Registry - access-controlled labels for ledger assets",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parsed = parser.parse_args(args)

    configure_logging()
    print(f"Starting label registry at http://{parsed.host}:{parsed.port}")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        "labelregistry.server.app:app",
        host=parsed.host,
        port=parsed.port,
        reload=parsed.reload,
        log_config=None,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
