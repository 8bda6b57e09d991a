#!/usr/bin/env python3
"""
Token Minter Entry Point

Starts the FastAPI server for the token minter.
"""

import sys

import uvicorn

from token_minter.api import create_app
from token_minter.config import get_config
from token_minter.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, "minter", config.log_format)

    logger.info(f"Starting token minter for {config.cluster} (program {config.resolve_program_id()})")
    try:
        uvicorn.run(create_app(), host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        logger.info("Shutting down token minter")
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)
