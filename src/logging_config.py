"""
Logging setup for the HeavenlyHub voice backend.

Each process writes one log file per category it uses, plus a shared
errors file:

    logs/
    ├── server.log          # HTTP requests and responses
    ├── livekit.log         # Tokens, room joins, room deletion
    ├── session.log         # Session start, end and eviction
    ├── client.log          # Session client state changes
    ├── chat.log            # Persona chat / LLM calls
    ├── config.log          # Settings loading
    ├── storage.log         # Redis session store
    └── errors.log          # ERROR and above from every category

structlog events are rendered through stdlib logging, so the category of
a log line is the name passed to ``structlog.get_logger``.

Usage:
    from src.logging_config import setup_logging
    setup_logging("server", level="INFO")
    setup_logging("client")
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog

LOGS_DIR = Path(__file__).parent.parent / "logs"

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CATEGORY_FILES = {
    "server": "server.log",
    "livekit": "livekit.log",
    "session": "session.log",
    "client": "client.log",
    "chat": "chat.log",
    "config": "config.log",
    "storage": "storage.log",
}

# Categories written to file, per process
PROCESS_CATEGORIES = {
    "server": ["server", "livekit", "session", "chat", "config", "storage"],
    "client": ["client", "livekit", "config"],
}

# Libraries that log every request at INFO
NOISY_LOGGERS = ["httpx", "httpcore", "livekit", "uvicorn.access"]

_configured_for: Optional[str] = None


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.FileHandler(str(path), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _categories_for(component: str) -> List[str]:
    return PROCESS_CATEGORIES.get(component, list(CATEGORY_FILES))


def setup_logging(
    component: str = "server",
    level: str = "INFO",
    logs_dir: Optional[str] = None,
) -> None:
    """Route structlog through stdlib logging with per-category files.

    Only the first call in a process takes effect.

    Args:
        component: "server" or "client"; selects which category files exist.
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        logs_dir: Directory for log files; defaults to ``<project>/logs``.
    """
    global _configured_for
    if _configured_for is not None:
        return
    _configured_for = component

    log_dir = Path(logs_dir) if logs_dir else LOGS_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(numeric_level)
    console.setFormatter(formatter)
    root.addHandler(console)
    root.addHandler(_file_handler(log_dir / "errors.log", logging.ERROR, formatter))

    categories = _categories_for(component)
    for category in categories:
        category_logger = logging.getLogger(category)
        category_logger.setLevel(numeric_level)
        if not category_logger.handlers:
            category_logger.addHandler(
                _file_handler(log_dir / CATEGORY_FILES[category], numeric_level, formatter)
            )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(component).info(
        "logging_configured",
        component=component,
        categories=categories,
        level=logging.getLevelName(numeric_level),
        logs_dir=str(log_dir),
    )
