"""
Main entry point for the chat relay server.
"""

from __future__ import annotations

import argparse

import structlog
import uvicorn

from aura_chat.config import Configuration
from aura_chat.logging_utils import setup_logging
from aura_chat.server import create_app

logger = structlog.get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Aura chat relay.")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML config file (defaults to the bundled config.yaml)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Load configuration and serve the relay with uvicorn."""
    args = parse_args(argv)
    configuration = Configuration(args.config)
    logging_config = configuration.get_logging_config()
    setup_logging(logging_config)

    if configuration.upstream_api_key is None:
        # Requests will fail with a configuration error until it is set
        logger.warning(
            "Upstream API key not set",
            env_var=configuration.get_upstream_config()["api_key_env"],
        )

    server_config = configuration.get_server_config()
    app = create_app(configuration)

    logger.info(
        "Starting chat relay",
        host=server_config["host"],
        port=server_config["port"],
        path=server_config["path"],
    )
    uvicorn.run(
        app,
        host=server_config["host"],
        port=server_config["port"],
        log_level=str(logging_config.get("level", "INFO")).lower(),
    )


if __name__ == "__main__":
    main()
