import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure logging defaults; ``level`` comes from ``Settings.log_level``."""
    logging.basicConfig(level=(level or "INFO").upper(), format=LOG_FORMAT)
