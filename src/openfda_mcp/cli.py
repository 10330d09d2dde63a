"""CLI entry point for the openfda-mcp server."""

import argparse
import logging
import os

import uvicorn

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point for the openfda-mcp server."""
    parser = argparse.ArgumentParser(
        description="openfda-mcp server - MCP server for FDA drug information"
    )
    parser.add_argument(
        "--mode",
        choices=["rest", "stdio"],
        default="rest",
        help="Server mode: 'rest' for HTTP JSON-RPC, 'stdio' for MCP over STDIO (default: rest)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP server (default: 3000, ignored in STDIO mode)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (default: INFO or OPENFDA_LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=None,
        help="Log output format (default: console or OPENFDA_LOG_FORMAT)",
    )
    args = parser.parse_args()

    # Convert CLI arguments to environment variables before config is imported
    if args.port is not None:
        if 1024 <= args.port <= 65535:
            os.environ["OPENFDA_PORT"] = str(args.port)
        else:
            print(f"Warning: Port {args.port} out of range (1024-65535), using default")
    if args.log_level:
        os.environ["OPENFDA_LOG_LEVEL"] = args.log_level
    if args.log_format:
        os.environ["OPENFDA_LOG_FORMAT"] = args.log_format

    from . import config  # noqa: PLC0415
    from .logging_config import configure_logging  # noqa: PLC0415

    configure_logging()

    logger.info(f"Starting {config.SERVER_NAME} {config.VERSION}")
    logger.info(f"  Mode: {args.mode}")
    logger.info(f"  openFDA base URL: {config.OPENFDA_BASE_URL}")
    logger.info(f"  API key: {'configured' if config.OPENFDA_API_KEY else 'not set'}")

    if args.mode == "stdio":
        if args.port is not None:
            logger.warning("--port flag is ignored in STDIO mode")

        import asyncio  # noqa: PLC0415

        from .mcp_stdio_server import run_stdio_server  # noqa: PLC0415

        asyncio.run(run_stdio_server())
    else:
        logger.info(f"  Listening on {config.HOST}:{config.PORT}")
        uvicorn.run(
            "openfda_mcp.app:app",
            host=config.HOST,
            port=config.PORT,
            loop="uvloop",
            workers=1,
            log_level=config.LOG_LEVEL.lower(),
            log_config=None,
        )


if __name__ == "__main__":
    main()
