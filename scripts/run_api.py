#!/usr/bin/env python3
"""Serve the REST API with uvicorn.

Usage: run_api.py [CONFIG_DIR]
"""

import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import uvicorn

from ct_app.api import create_app
from ct_app.config.loader import ConfigLoader
from ct_app.logging import configure_logging, get_logger
from ct_app.service import TraderService


def main() -> None:
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    settings = ConfigLoader.create(config_dir).load_settings()

    configure_logging(
        level=settings["logging"]["level"],
        format_json=settings["logging"]["format_json"]
    )
    logger = get_logger(__name__)

    service = TraderService.create(config_dir)
    app = create_app(service)

    host = settings["api"]["host"]
    port = settings["api"]["port"]
    logger.info("Starting API server", host=host, port=port)

    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
