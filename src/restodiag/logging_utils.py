"""Logging setup and timing helpers for restodiag runs.

Console and file output share one format. If the file handler cannot be
attached the run continues with console logging only.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, Optional

from .ingestion_utils import ensure_directory


LOGGER_NAME = "restodiag"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _safe_add_file_handler(logger: logging.Logger, path: Path, formatter: logging.Formatter) -> None:
    try:
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setFormatter(formatter)
        logger.addHandler(fh)
    except OSError as exc:  # pragma: no cover - filesystem specific
        logger.warning("Failed to attach file handler %s (%s)", str(path), exc)


def setup_logging(config: Dict, output_dir: Optional[Path] = None, level: Optional[str] = None) -> logging.Logger:
    """Configure the package logger with console and file handlers.

    The log file goes to ``output_dir`` when given, otherwise to
    ``paths.logs_dir`` from the configuration.
    """

    logging_cfg = (config or {}).get("logging", {})
    base = output_dir if output_dir is not None else Path((config or {}).get("paths", {}).get("logs_dir", "logs"))
    ensure_directory(base)
    log_path = Path(base) / logging_cfg.get("file_name", "restodiag.log")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level or logging_cfg.get("level", "INFO")).upper(), logging.INFO))
    # Reset handlers to avoid duplication across repeated initializations
    logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    _safe_add_file_handler(logger, log_path, formatter)

    logger.debug("Logging initialised. Logs will be written to %s", log_path)
    return logger


def start_timer() -> float:
    return time.perf_counter()


def end_timer(stage: str, start_time: float, timing_dict: Dict[str, float], logger: logging.Logger) -> float:
    """Record the elapsed seconds for ``stage`` into ``timing_dict`` and log it."""
    elapsed = time.perf_counter() - float(start_time)
    timing_dict[stage] = round(elapsed, 4)
    logger.info("%s completed in %.2f seconds", stage, elapsed)
    return elapsed
