#!/usr/bin/env python3
"""Command-line entry point for the Joplin MCP server.

This can be run as: python -m joplin_mcp_server
"""

import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import List, Optional

from joplin_mcp_server import __version__
from joplin_mcp_server.config import LOG_LEVELS, TRANSPORTS, ConfigError, JoplinMCPConfig
from joplin_mcp_server.middleware import TRAFFIC_LOGGER_NAME

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="joplin-mcp-server",
        description="MCP server for the Joplin Web Clipper API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  joplin-mcp-server --token YOUR_TOKEN                      # STDIO transport, Joplin auto-discovered
  joplin-mcp-server --env-file .env                         # Read JOPLIN_TOKEN etc. from a file
  joplin-mcp-server --host 172.20.0.1 --port 41184          # Joplin on another host (e.g. WSL)
  joplin-mcp-server --transport http --http-port 3000       # HTTP transport on port 3000
        """,
    )

    parser.add_argument("--config", "-c", type=str, help="Configuration file path (JSON or YAML)")
    parser.add_argument("--env-file", type=str, help="Environment file to load (default: .env if present)")
    parser.add_argument("--host", type=str, help="Joplin host (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Joplin Web Clipper port (default: 41184)")
    parser.add_argument("--token", type=str, help="Joplin Web Clipper API token")
    parser.add_argument(
        "--transport", "-t", type=str, choices=TRANSPORTS, help="Transport protocol to use (default: stdio)"
    )
    parser.add_argument("--http-host", type=str, help="Host to bind to for HTTP transport (default: 127.0.0.1)")
    parser.add_argument("--http-port", type=int, help="Port to bind to for HTTP transport (default: 3000)")
    parser.add_argument("--path", type=str, help="Path for HTTP transport endpoint (default: /mcp)")
    parser.add_argument("--log-level", type=str, choices=LOG_LEVELS, help="Logging level (default: info)")
    parser.add_argument("--log-dir", type=str, help="Directory for MCP traffic log files (disabled if unset)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> JoplinMCPConfig:
    """Build and validate the configuration from all sources, CLI flags last."""
    config = JoplinMCPConfig.load(
        config_file=args.config,
        env_file=args.env_file,
        host=args.host,
        port=args.port,
        token=args.token,
        transport=args.transport,
        http_host=args.http_host,
        http_port=args.http_port,
        http_path=args.path,
        log_level=args.log_level,
        log_dir=args.log_dir,
    )
    config.validate()
    return config


def setup_logging(config: JoplinMCPConfig) -> Optional[Path]:
    """Log to stderr; stdout belongs to the stdio transport.

    Returns:
        The traffic log file path when ``log_dir`` is configured
    """
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        force=True,
    )

    if not config.log_dir:
        return None

    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    log_file = log_dir / f"mcp-server-{timestamp}.log"

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    traffic_logger = logging.getLogger(TRAFFIC_LOGGER_NAME)
    traffic_logger.addHandler(handler)
    traffic_logger.setLevel(logging.INFO)
    traffic_logger.propagate = False
    return log_file


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the console script."""
    args = parse_args(argv)

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return 1

    log_file = setup_logging(config)
    if log_file:
        logger.info(f"📝 Logging MCP traffic to {log_file}")
    logger.info(f"Configuration: {config!r}")

    from joplin_mcp_server.fastmcp_server import main as server_main

    try:
        server_main(config)
    except KeyboardInterrupt:
        logger.info("👋 Joplin MCP server stopped by user")
    except Exception as e:
        logger.exception(f"❌ Server error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
