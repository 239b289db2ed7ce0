"""Application entry point for the document vault API server."""

from pathlib import Path

import uvicorn

from src.api.app import create_app
from src.utils.config import load_config
from src.utils.logger import setup_logging


def main(
    host: str = "0.0.0.0", port: int = 8000, config_path: Path | None = None
) -> None:
    """Start the FastAPI application server."""
    config = load_config(config_path)
    setup_logging(config.log_level)
    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    main()
