"""Logging setup."""
import logging

from app.config import settings


def configure_logging():
    """Configure root logging once for the whole process."""
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, settings.log_level.upper(), logging.INFO)
    )
    # The SDK clients are chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
