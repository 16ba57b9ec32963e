"""Application plumbing shared by the CLI and the API: config, logging and the CLI itself."""

from app.config import get_config, get_section, load_config
from app.logging import get_logger, setup_logging

__all__ = ["get_config", "get_logger", "get_section", "load_config", "setup_logging"]
