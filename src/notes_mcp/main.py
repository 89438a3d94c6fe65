#!/usr/bin/env python
"""Main entry point for the Notes MCP server."""
import argparse
import atexit
import logging
import os
import sys
from pathlib import Path

from notes_mcp import __version__
from notes_mcp.config import config
from notes_mcp.exceptions import StorageError
from notes_mcp.observability import configure_logging, metrics
from notes_mcp.server.mcp_server import NotesMcpServer
from notes_mcp.storage.note_store import NoteStore


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Notes MCP Server")
    parser.add_argument(
        "--notes-dir",
        help="Directory for storing note files",
        type=str,
        default=os.environ.get("NOTES_PATH")
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotating log files",
        type=str,
        default=os.environ.get("NOTES_LOG_DIR")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTES_LOG_LEVEL", "INFO").upper()
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.notes_dir:
        config.notes_dir = Path(args.notes_dir)
    if args.log_dir:
        config.log_dir = Path(args.log_dir)
    config.log_level = args.log_level


def _save_metrics_on_exit():
    """Save metrics to disk on server shutdown."""
    if metrics.save_metrics():
        logging.getLogger(__name__).info("Metrics saved to disk on shutdown")


def main(argv=None):
    """Run the Notes MCP server."""
    args = parse_args(argv)
    update_config(args)

    # Configure logging (stderr + persistent file logging with rotation)
    log_level = getattr(logging, config.log_level, logging.INFO)
    try:
        log_dir = configure_logging(log_dir=config.log_dir, level=log_level, console=True)
    except OSError as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    atexit.register(_save_metrics_on_exit)

    # Resolve the storage root once; the store owns it from here on
    try:
        store = NoteStore(
            config.get_notes_dir(),
            max_note_size_bytes=config.max_note_size_bytes,
            max_name_length=config.max_name_length,
            extension=config.note_extension,
        )
    except StorageError as e:
        logger.error(f"Failed to initialize notes directory: {e}")
        sys.exit(1)

    try:
        logger.info("Starting Notes MCP server")
        server = NotesMcpServer(store=store, settings=config, collector=metrics)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
