"""Code Knight launcher (web edition).

Runs the FastAPI service that the browser frontend talks to.
"""

import logging
import os
import sys
import webbrowser
from pathlib import Path

import uvicorn
import yaml
from dotenv import load_dotenv

from codeknight.core.save import SaveManager
from codeknight.core.state import Settings
from codeknight.core.world_data import JsonWorldSource
from codeknight.server.api import create_app
from codeknight.server.controller import build_controller

load_dotenv()

logger = logging.getLogger("codeknight")


def load_config() -> dict:
    """Load the YAML config file."""
    config_path = Path(os.environ.get("CODEKNIGHT_CONFIG", "config.yaml"))
    if not config_path.exists():
        logger.warning("%s not found, using default config", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to load config (%s), using default config", exc)
        return {}


def main():
    """Script entry point; starts the web service."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings = Settings()
    config = load_config()
    if config:
        settings.load_from_dict(config)
    logging.getLogger().setLevel(settings.log_level)
    logger.info("Configuration loaded")

    controller = build_controller(
        settings=settings,
        source=JsonWorldSource(settings.data_dir),
        saves=SaveManager(settings.save_path),
    )

    static_dir = Path(settings.static_root)
    if not static_dir.exists():
        logger.warning("Static directory not found: %s (API only)", static_dir)

    app = create_app(controller, static_dir=static_dir if static_dir.exists() else None)

    url = f"http://{settings.server_host}:{settings.server_port}"
    logger.info("Server running at %s (API docs: %s/docs)", url, url)

    if settings.auto_open_browser and static_dir.exists():
        try:
            webbrowser.open(url)
        except webbrowser.Error as exc:
            logger.warning("Could not open browser: %s", exc)

    config = uvicorn.Config(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("Server interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
