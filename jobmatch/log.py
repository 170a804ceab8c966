"""Centralized logging configuration for the matching engine."""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  [%(threadName)s]  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"

# Per-request chatter from the language-model client stack.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")

_configured = False


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def configure(level: str | None = None, log_file: bool | None = None, force: bool = False) -> None:
    """Install root handlers: stdout always, a dated file under the log dir on request.

    *level* defaults to ``LOG_LEVEL`` and *log_file* to ``JOBMATCH_LOG_FILE``.
    Existing root handlers are left alone unless *force* is set.
    """
    global _configured
    if _configured and not force:
        return
    _configured = True

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    resolved = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(resolved)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))

    if force:
        for handler in list(root.handlers):
            root.removeHandler(handler)
    elif root.handlers:
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(resolved)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file is None:
        log_file = _truthy(os.environ.get("JOBMATCH_LOG_FILE", ""))
    if not log_file:
        return
    log_dir = Path(os.environ.get("JOBMATCH_LOG_DIR", "") or _DEFAULT_LOG_DIR)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / f"jobmatch_{datetime.now():%Y-%m-%d}.log", encoding="utf-8")
    except OSError as exc:
        root.warning("File logging disabled (%s)", exc)
        return
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)
    root.addHandler(fh)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger, configuring the root logger on first use."""
    configure()
    return logging.getLogger(name)
