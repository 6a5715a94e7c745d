"""Main entry point for the progression API server"""
import logging

import uvicorn

from src.api.server import create_api_application
from src.config import validate_config

logger = logging.getLogger(__name__)

app = create_api_application()


def main() -> None:
    """Validate configuration and serve the API"""
    logger.info("Validating configuration...")
    validate_config()
    uvicorn.run("src.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
