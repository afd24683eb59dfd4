"""
Logging setup for the Fit Score API.

Everything the service logs goes through loggers named ``fit_score.<module>``.
Resume and job text is personal data and is never logged verbatim; use
``describe_text`` to log a size and a short fingerprint instead, which is
enough to correlate an upload with a later scoring request.
"""
import functools
import hashlib
import inspect
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

LOGGER_PREFIX = "fit_score"

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-36s | %(funcName)-20s:%(lineno)-4d | %(message)s",
}

# Libraries on the request path that are noisy below these levels:
# pdfminer logs every layout object at DEBUG, urllib3 every connection to the
# embedding provider, pymongo every server heartbeat.
THIRD_PARTY_LEVELS = {
    "pdfminer": "ERROR",
    "urllib3": "WARNING",
    "pymongo": "WARNING",
    "motor": "WARNING",
    "multipart": "WARNING",
    "python_multipart": "WARNING",
}

# level None means "take LOG_LEVEL"
ENVIRONMENT_PROFILES: Dict[str, Dict[str, Any]] = {
    "production": {"level": None, "console": True, "files": True, "format_style": "detailed"},
    "development": {"level": "DEBUG", "console": True, "files": True, "format_style": "detailed"},
    "testing": {"level": "WARNING", "console": True, "files": False, "format_style": "simple"},
}


def _rotating_file(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(path),
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": 5,
        "encoding": "utf8",
    }


def setup_logging(
    level: str = "INFO",
    console: bool = True,
    files: bool = True,
    format_style: str = "detailed",
    log_dir: Optional[str] = None,
) -> None:
    """
    Configure the root, uvicorn and third-party loggers with dictConfig.

    With ``files`` on, everything goes to ``fit_score_<date>.log`` and errors
    additionally to ``fit_score_errors_<date>.log`` under LOG_DIR.
    """
    handlers: Dict[str, Any] = {}
    if console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": format_style if format_style in FORMATS else "detailed",
            "stream": "ext://sys.stdout",
        }

    directory = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    stamp = datetime.now().strftime("%Y%m%d")
    if files:
        directory.mkdir(parents=True, exist_ok=True)
        handlers["file"] = _rotating_file(directory / f"fit_score_{stamp}.log", level)
        handlers["error_file"] = _rotating_file(directory / f"fit_score_errors_{stamp}.log", "ERROR")

    server_handlers = [name for name in ("console", "file") if name in handlers]
    loggers: Dict[str, Any] = {
        "": {"level": level, "handlers": list(handlers), "propagate": False},
        "uvicorn": {"level": "INFO", "handlers": server_handlers, "propagate": False},
        "uvicorn.access": {"level": "INFO", "handlers": server_handlers[:1], "propagate": False},
    }
    for name, lib_level in THIRD_PARTY_LEVELS.items():
        loggers[name] = {"level": lib_level}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            name: {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"} for name, fmt in FORMATS.items()
        },
        "handlers": handlers,
        "loggers": loggers,
    })

    logger = get_logger("logging")
    logger.info(f"Logging configured - level={level} console={console} files={files}")
    if files:
        logger.info(f"Log directory: {directory.resolve()}")


def configure_for_environment() -> str:
    """Apply the ENVIRONMENT profile (production, development, testing); returns the profile used"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    profile = dict(ENVIRONMENT_PROFILES.get(environment, {"level": None}))
    profile["level"] = profile.get("level") or log_level
    setup_logging(**profile)
    return environment


def get_logger(name: str) -> logging.Logger:
    """Logger under the service namespace, e.g. get_logger(__name__) -> fit_score.app.routers.resume"""
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def describe_text(text: Optional[str]) -> str:
    """Log-safe summary of a resume or job description: length plus a short sha1 fingerprint."""
    if not text:
        return "0 chars"
    digest = hashlib.sha1(text.encode("utf-8", errors="ignore")).hexdigest()[:10]
    return f"{len(text)} chars, sha1 {digest}"


def log_function_call(func):
    """Log entry, duration and failure of a function at DEBUG/ERROR; argument values are not logged"""
    logger = get_logger(func.__module__)
    arg_names = list(inspect.signature(func).parameters)

    def _enter(args, kwargs):
        passed = arg_names[:len(args)] + list(kwargs)
        logger.debug(f"Entering {func.__name__}({', '.join(passed)})")
        return time.perf_counter()

    def _failed(started, exc):
        logger.error(f"{func.__name__} failed after {time.perf_counter() - started:.3f}s: {exc}")

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            started = _enter(args, kwargs)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _failed(started, e)
                raise
            logger.debug(f"Completed {func.__name__} in {time.perf_counter() - started:.3f}s")
            return result

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        started = _enter(args, kwargs)
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _failed(started, e)
            raise
        logger.debug(f"Completed {func.__name__} in {time.perf_counter() - started:.3f}s")
        return result

    return sync_wrapper


class PerformanceMonitor:
    """Times a block; warns when it runs past threshold_ms and records elapsed_ms"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.start_time = None
        self.elapsed_ms = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.debug(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation_name} took {self.elapsed_ms:.2f}ms (threshold {self.threshold_ms}ms)"
            )
        else:
            self.logger.debug(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
        return False
