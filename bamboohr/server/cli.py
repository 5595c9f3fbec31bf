"""Command-line entry point for the BambooHR MCP server.

This module starts the stdio MCP server that exposes BambooHR data to an
AI assistant.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from bamboohr.sdk._logging import configure_logging, register_secret
from bamboohr.sdk.client import BambooHRClient
from bamboohr.sdk.config import ClientConfig, load_dotenv_for_sdk

from .app import create_server

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="bamboohr-mcp", description="Serve BambooHR data over the Model Context Protocol (stdio)."
    )
    parser.add_argument("--env-file", type=Path, help="Path to a .env file (default: ./.env)")
    parser.add_argument("--log-level", help="Log level (default: $LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def _describe_validation_error(exc: ValidationError) -> str:
    # Only field names and messages: input values may hold the API key
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
        for error in exc.errors()
    )


def load_config() -> Optional[ClientConfig]:
    """Build the client configuration, logging why when it is unusable."""
    api_key = os.getenv("BAMBOO_API_KEY")
    if api_key:
        register_secret(api_key)

    missing = [key for key in ("BAMBOO_API_KEY", "BAMBOO_SUBDOMAIN") if not os.getenv(key, "").strip()]
    if missing:
        logger.error(
            "Missing required environment variables: %s. Create a .env file with those keys.",
            ", ".join(missing),
        )
        return None

    try:
        return ClientConfig.from_environment()
    except ValidationError as exc:
        logger.error("Invalid BambooHR configuration: %s", _describe_validation_error(exc))
    except ValueError as exc:
        logger.error("Invalid BambooHR configuration: %s", exc)
    return None


async def serve(config: ClientConfig) -> None:
    """Run the stdio server until the client disconnects."""
    client = BambooHRClient(config)
    server = create_server(client)
    logger.info("Starting BambooHR MCP server for subdomain %s", config.subdomain)
    try:
        await server.run_stdio_async()
    finally:
        client.clear_cache()
        await client.aclose()
        logger.info("BambooHR MCP server stopped")


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the bamboohr-mcp command.

    Environment Variables
    ---------------------
    BAMBOO_API_KEY : str
        BambooHR API key (required)
    BAMBOO_SUBDOMAIN : str
        Company subdomain, e.g. "acme" for acme.bamboohr.com (required)
    CACHE_TIMEOUT_MS, REQUEST_TIMEOUT_MS, MAX_RETRY_ATTEMPTS,
    RETRY_BASE_DELAY_MS, RETRY_MAX_DELAY_MS : int
        Optional overrides of the client timings
    LOG_LEVEL : str
        Log level for stderr output (defaults to "INFO")

    Exit Codes
    ----------
    0 : Clean shutdown
    1 : Configuration error
    """
    args = _parse_args(argv)
    load_dotenv_for_sdk(args.env_file)
    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    config = load_config()
    if config is None:
        sys.exit(1)

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down")


def cli_main():
    """Entry point for the bamboohr-mcp command."""
    main()


if __name__ == "__main__":
    cli_main()
