import logging
import os
from datetime import datetime
from pathlib import Path


def setup_logging(level: str = "INFO", log_file: Path | None = None, append: bool = True) -> Path:
    """
    Configure logging for long scraping runs.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path (defaults to timestamped file in logs/)
        append: Whether to append to existing log file (default: True)

    Returns:
        Path of the log file in use
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Clear any existing handlers
    root_logger.handlers.clear()

    # Dependency modules stay at INFO or above to reduce noise
    logging.getLogger("asyncio").setLevel(logging.INFO)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.client").setLevel(logging.WARNING)

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    if log_file is None:
        logs_dir = Path(os.environ.get("GOODSCRAPES_LOG_DIR", "logs"))
        logs_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = logs_dir / f"goodscrapes_{timestamp}.log"
    else:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(str(log_file), mode="a" if append else "w")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging to file: {log_file}")
    logger.info(f"Logging initialized at {level} level")
    return log_file
