import logging
import os
from typing import Optional


_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


# HTTP and SDK loggers that log every request at INFO; held at WARNING unless
# the gateway itself runs at DEBUG.
NOISY_LIBRARIES = ("httpx", "httpcore", "openai", "urllib3", "uvicorn.access")


def _coerce_level(value: Optional[str]) -> int:
    if isinstance(value, str):
        return _LEVELS.get(value.upper().strip(), logging.INFO)
    if isinstance(value, int):
        return value
    return logging.INFO


def quiet_libraries(level: int) -> None:
    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for lib in NOISY_LIBRARIES:
        logging.getLogger(lib).setLevel(library_level)


def get_logger(name: str) -> logging.Logger:
    """Return a configured stream logger with consistent formatting.

    - Honors LOG_LEVEL (default INFO) and LOG_FILE (optional path).
    - One handler per named logger; repeated calls return the same logger.
    - Store and AI client libraries are kept at WARNING unless LOG_LEVEL is DEBUG.
    """
    logger = logging.getLogger(name)
    if getattr(logger, "_storefront_configured", False):
        return logger

    level = _coerce_level(os.environ.get("LOG_LEVEL", "INFO"))
    logger.setLevel(level)
    quiet_libraries(level)

    fmt = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    # Optional log file (appends)
    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(formatter)
            logger.addHandler(fh)
        except OSError:
            logger.warning("LOG_FILE could not be opened; continuing without file logging")

    logger.propagate = False
    setattr(logger, "_storefront_configured", True)
    return logger
