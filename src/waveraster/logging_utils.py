from __future__ import annotations

import logging
import os
import warnings
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

_session_log_dir: Path | None = None

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LOG_MAX_BYTES = 1_000_000
LOG_BACKUP_COUNT = 3


def configure_logging(app_name: str = "waveraster", level: int = logging.INFO) -> Path:
    """Route the root logger to a rotating per-session file and the console.

    The engine modules only create module loggers and never call this; it is
    for the application or service that embeds them. Calling it again reuses
    the handlers it already installed. Returns the log file path.
    """
    log_dir = get_session_log_dir(app_name, _dev_mode())
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"{app_name}.log"

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    installed_files = {getattr(handler, "baseFilename", None) for handler in root.handlers}
    if str(log_path) not in installed_files:
        file_handler = RotatingFileHandler(
            log_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
        )
        root.addHandler(_prepared(file_handler, level, formatter))
    if not any(type(handler) is logging.StreamHandler for handler in root.handlers):
        root.addHandler(_prepared(logging.StreamHandler(), level, formatter))

    logging.captureWarnings(True)
    warnings.simplefilter("default")
    logging.getLogger(__name__).info("waveraster logging initialized at %s", log_path)
    return log_path


def _prepared(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def get_log_dir(app_name: str, force_dev: bool | None = None) -> Path:
    if force_dev is None:
        force_dev = _dev_mode()
    return Path.cwd() / "logs" if force_dev else (Path.home() / f".{app_name}" / "logs")


def get_session_log_dir(app_name: str, force_dev: bool | None = None) -> Path:
    global _session_log_dir
    if _session_log_dir is None:
        base_dir = get_log_dir(app_name, force_dev)
        session_stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        _session_log_dir = base_dir / session_stamp
    return _session_log_dir


def _dev_mode() -> bool:
    return os.environ.get("WAVERASTER_DEV", "").lower() in {"1", "true", "yes"}
