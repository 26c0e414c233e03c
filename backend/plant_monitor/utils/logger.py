import logging
import sys
from pathlib import Path

from plant_monitor.core.config import Settings, settings as default_settings


def setup_logging(settings: Settings = default_settings) -> logging.Logger:
    """Setup application logging"""

    logger = logging.getLogger("plant_monitor")
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # Repeated app construction (tests, reloads) must not stack handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.log_file:
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
