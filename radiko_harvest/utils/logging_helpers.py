"""
Structured logging helpers for consistent log formatting.
"""
import logging
from datetime import datetime, timezone


def log_harvest_start(logger: logging.Logger) -> None:
    """Log harvest operation start."""
    logger.info(f"Harvest started at {datetime.now(timezone.utc).isoformat()}")


def log_harvest_end(logger: logging.Logger, status: str) -> None:
    """Log harvest operation end."""
    logger.info(f"Harvest completed at {datetime.now(timezone.utc).isoformat()} (status: {status})")


def log_station_processing(logger: logging.Logger, idx: int, total: int, station_id: str, name: str) -> None:
    """
    Log station processing header.

    Args:
        logger: Logger instance
        idx: Current station index (1-based)
        total: Total number of stations
        station_id: Station being processed
        name: Station display name
    """
    logger.info(f"Processing station {idx}/{total}: {station_id} ({name})")


def sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        protocol, rest = url.split("://", 1)
        if "@" in rest.split("/", 1)[0]:
            rest = rest.split("@", 1)[1]
            return f"{protocol}://***:***@{rest}"
        return url
    except (ValueError, IndexError):
        return url
