"""
main.py - Main entry point for the Pivot Explorer API
"""
import logging

import uvicorn

from pivot_explorer.config import config_manager
from pivot_explorer.rest_api import create_api


def main():
    """
    Start the Pivot Explorer server.
    """
    config = config_manager.load_config('env')
    logging.basicConfig(level=config.log_level)
    logger = logging.getLogger(__name__)

    app = create_api(config).get_app()

    logger.info("Starting Pivot Explorer on %s:%d", config.api_host, config.api_port)
    logger.info("Saved queries: %s store", config.store_type)

    uvicorn.run(app, host=config.api_host, port=config.api_port)


if __name__ == "__main__":
    main()
