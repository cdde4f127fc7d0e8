"""appgate CLI - serve the gateway over MCP stdio or HTTP.

Example:
    # MCP server on stdio (for an MCP client / Apps SDK host)
    appgate serve

    # REST facade
    appgate serve --transport http --port 8780

    # Inspect what would be served
    appgate tools
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from appgate.catalog import register_catalog
from appgate.framework.context import GatewayContext, create_gateway_context
from appgate.observability.logging import setup_logging
from appgate.server.config import Config, load_config

logger = logging.getLogger(__name__)


def _build_context(config: Config, with_catalog: bool) -> GatewayContext:
    context = create_gateway_context(config)
    if with_catalog:
        register_catalog(context)
    context.seal()
    return context


# =============================================================================
# Commands
# =============================================================================


def serve(args: argparse.Namespace, config: Config) -> int:
    """Start the gateway on the selected transport.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    transport = args.transport or config.server.transport
    context = _build_context(config, with_catalog=not args.no_catalog)

    try:
        if transport == "stdio":
            from appgate.server.mcp_server import GatewayMCPServer

            asyncio.run(GatewayMCPServer(context).run())
        else:
            import uvicorn

            from appgate.server.rest_api import create_app

            uvicorn.run(
                create_app(context),
                host=args.host or config.server.http_host,
                port=args.port or config.server.http_port,
                log_level=config.server.log_level.lower(),
            )
        return 0

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        return 0
    except Exception:
        logger.exception("Server error")
        return 1


def list_tools(args: argparse.Namespace, config: Config) -> int:
    """Print the tools/list payload as JSON."""
    context = _build_context(config, with_catalog=not args.no_catalog)
    print(json.dumps(context.registry.get_mcp_tool_definitions(), indent=2))
    return 0


def show_config(args: argparse.Namespace, config: Config) -> int:
    """Print the effective configuration as JSON."""
    print(json.dumps(config.to_dict(), indent=2, default=str))
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="appgate",
        description="appgate - Apps SDK tool invocation gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  appgate serve
  appgate serve --transport http --port 8780
  appgate --config appgate_config.yml tools
        """,
    )

    parser.add_argument("--config", type=Path, default=None, help="Path to appgate_config.yml")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Override the configured log level",
    )
    parser.add_argument(
        "--no-catalog", action="store_true", help="Do not register the built-in demo tools"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    serve_parser = subparsers.add_parser("serve", help="Start the gateway")
    serve_parser.add_argument("--transport", choices=["stdio", "http"], default=None)
    serve_parser.add_argument("--host", type=str, default=None, help="HTTP bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="HTTP port")
    serve_parser.set_defaults(func=serve)

    tools_parser = subparsers.add_parser("tools", help="Print registered tools as JSON")
    tools_parser.set_defaults(func=list_tools)

    config_parser = subparsers.add_parser("config", help="Print the effective configuration")
    config_parser.set_defaults(func=show_config)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(
        level=args.log_level or config.server.log_level,
        structured=config.observability.structured_logging,
        log_file=config.server.log_file or None,
    )

    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
