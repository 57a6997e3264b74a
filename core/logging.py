"""
Centralized logging: console output, per-component rotating log files
with gzip compression, secret redaction and a keyword-friendly wrapper.
"""
import sys
import os
import re
import gzip
import shutil
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from core.config import settings


# Component name -> logger names routed to that component's file
COMPONENT_LOGGERS = {
    "ai": ["ai", "llm_client", "question_generator", "assistant", "web_search", "openai"],
    "maps": ["maps"],
    "database": ["database", "sqlalchemy.engine"],
    "access": ["access", "uvicorn", "uvicorn.access", "httpx"],
}

# Loggers that should not also bubble up into app.log
ISOLATED_LOGGERS = {"ai", "llm_client", "question_generator", "assistant", "web_search", "maps"}

_RESERVED_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class ComponentFilter(logging.Filter):
    """Make sure every record has a ``component`` attribute."""

    def __init__(self, default_component: str = "app"):
        super().__init__()
        self.default_component = default_component

    def filter(self, record):
        if not hasattr(record, "component"):
            name = record.name
            if name in ("httpx", "uvicorn", "uvicorn.access"):
                record.component = "http"
            elif name.startswith("sqlalchemy"):
                record.component = "database"
            else:
                record.component = self.default_component
        return True


class SecurityFilter(logging.Filter):
    """Strip credentials out of log messages."""

    SENSITIVE_KEYS = {
        "password", "token", "secret", "key", "api_key",
        "authorization", "auth", "credential", "jwt", "bearer",
    }

    _PATTERNS = (
        (re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}"), "[REDACTED]"),
        (re.compile(r"\b[A-Za-z0-9]{32,}\b"), "[REDACTED]"),
        (re.compile(r"Bearer\s+[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+"), "Bearer [REDACTED]"),
        (re.compile(r"([?&]key=)[^&\s]+"), r"\1[REDACTED]"),
        (re.compile(r"://[^:/\s]+:[^@/\s]+@"), "://[REDACTED]:[REDACTED]@"),
    )

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = self.sanitize(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = self._sanitize_value(record.args)
            else:
                record.args = tuple(self._sanitize_value(arg) for arg in record.args)
        return True

    @classmethod
    def sanitize(cls, message: str) -> str:
        for pattern, replacement in cls._PATTERNS:
            message = pattern.sub(replacement, message)
        return message

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.sanitize(value)
        if isinstance(value, dict):
            return {
                k: "[REDACTED]" if any(s in str(k).lower() for s in self.SENSITIVE_KEYS) else v
                for k, v in value.items()
            }
        return value


class CompressedRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Size-based rotating handler that gzips the freshly rotated file."""

    def __init__(self, *args, **kwargs):
        self.compress_logs = kwargs.pop("compress_logs", settings.log_compression)
        super().__init__(*args, **kwargs)

    def doRollover(self):
        super().doRollover()

        if not self.compress_logs or self.backupCount <= 0:
            return

        backup_file = f"{self.baseFilename}.1"
        if not os.path.exists(backup_file):
            return

        # shift older archives up by one before writing the new .1.gz
        for i in range(self.backupCount - 1, 0, -1):
            older = f"{self.baseFilename}.{i}.gz"
            newer = f"{self.baseFilename}.{i + 1}.gz"
            if os.path.exists(older):
                if os.path.exists(newer):
                    os.remove(newer)
                os.rename(older, newer)

        try:
            with open(backup_file, "rb") as f_in, gzip.open(f"{backup_file}.gz", "wb") as f_out:
                shutil.copyfileobj(f_in, f_out)
            os.remove(backup_file)
        except OSError as e:
            # keep the uncompressed backup
            sys.stderr.write(f"Warning: failed to compress log file {backup_file}: {e}\n")


class StructuredLogger:
    """Logger wrapper that accepts structured keyword fields."""

    def __init__(self, name: str, logger: logging.Logger):
        self.name = name
        self._logger = logger

    def _format_message(self, msg: str, **kwargs) -> str:
        if not kwargs or settings.log_format == "json":
            return msg
        parts = ", ".join(f"{key}={value}" for key, value in kwargs.items())
        return f"{msg} [{parts}]"

    def _log(self, level: int, msg: str, *args, **kwargs):
        exc_info = kwargs.pop("exc_info", False)
        extra = kwargs.pop("extra", {})
        extra["component"] = self.name

        if settings.log_format == "json":
            # JsonFormatter serialises extra attributes as fields
            for key, value in kwargs.items():
                if key in _RESERVED_RECORD_ATTRS:
                    key = f"field_{key}"
                extra.setdefault(key, value)

        self._logger.log(level, self._format_message(msg, **kwargs), *args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs["exc_info"] = True
        self.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs):
        self._log(logging.CRITICAL, msg, *args, **kwargs)


class CentralizedLogManager:
    """Singleton owning the root handlers and the per-component file handlers."""

    _instance = None
    _lock = threading.Lock()
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return
            self._loggers: Dict[str, StructuredLogger] = {}
            self._handlers: Dict[str, logging.Handler] = {}
            self._log_directory = Path(settings.log_directory)
            if settings.enable_file_logging:
                self._log_directory.mkdir(parents=True, exist_ok=True)
            self._setup_root_logger()
            self._setup_component_loggers()
            self._initialized = True

    def _create_formatter(self, include_component: bool = True) -> logging.Formatter:
        if settings.log_format == "json":
            fmt = "%(asctime)s %(name)s %(levelname)s %(component)s %(message)s" if include_component \
                else "%(asctime)s %(name)s %(levelname)s %(message)s"
            return jsonlogger.JsonFormatter(fmt=fmt, datefmt="%Y-%m-%dT%H:%M:%S")
        fmt = "%(asctime)s - %(name)s - %(levelname)s - [%(component)s] - %(message)s" if include_component \
            else "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        return logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def _create_rotating_handler(self, log_file: str, level: int = logging.INFO) -> logging.Handler:
        handler = CompressedRotatingFileHandler(
            filename=str(self._log_directory / log_file),
            maxBytes=settings.log_file_max_size_mb * 1024 * 1024,
            backupCount=settings.log_file_backup_count,
            compress_logs=settings.log_compression,
        )
        handler.setLevel(level)
        handler.addFilter(ComponentFilter())
        handler.addFilter(SecurityFilter())
        handler.setFormatter(self._create_formatter(include_component=True))
        return handler

    def _create_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
        handler.addFilter(ComponentFilter())
        handler.addFilter(SecurityFilter())
        handler.setFormatter(self._create_formatter(include_component=False))
        return handler

    def _setup_root_logger(self):
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

        console_handler = self._create_console_handler()
        root_logger.addHandler(console_handler)
        self._handlers["console"] = console_handler

        if settings.enable_file_logging:
            app_handler = self._create_rotating_handler(settings.app_log_file)
            root_logger.addHandler(app_handler)
            self._handlers["app"] = app_handler

            error_handler = self._create_rotating_handler(settings.error_log_file, logging.ERROR)
            root_logger.addHandler(error_handler)
            self._handlers["error"] = error_handler

    def _setup_component_loggers(self):
        if not settings.enable_file_logging:
            return

        files = {
            "ai": settings.ai_log_file,
            "maps": settings.maps_log_file,
            "database": settings.database_log_file,
            "access": settings.access_log_file,
        }
        for component, logger_names in COMPONENT_LOGGERS.items():
            level = logging.INFO
            if component == "database" and not settings.enable_sql_logging:
                level = logging.WARNING
            handler = self._create_rotating_handler(files[component], level)
            self._handlers[component] = handler

            for logger_name in logger_names:
                logger = logging.getLogger(logger_name)
                logger.addHandler(handler)
                logger.setLevel(level)
                if logger_name in ISOLATED_LOGGERS:
                    # component file plus console, but not app.log
                    logger.addHandler(self._handlers["console"])
                    logger.propagate = False

    def get_logger(self, name: str) -> StructuredLogger:
        if name not in self._loggers:
            self._loggers[name] = StructuredLogger(name, logging.getLogger(name))
        return self._loggers[name]

    def shutdown(self):
        for handler in self._handlers.values():
            handler.close()
        self._handlers.clear()
        self._loggers.clear()
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            handler.close()
            root_logger.removeHandler(handler)
        CentralizedLogManager._initialized = False
        CentralizedLogManager._instance = None


_log_manager = None


def setup_logging() -> CentralizedLogManager:
    """Setup centralized logging system."""
    global _log_manager
    if _log_manager is None:
        _log_manager = CentralizedLogManager()
    return _log_manager


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return setup_logging().get_logger(name)


def shutdown_logging():
    """Shutdown logging system gracefully."""
    global _log_manager
    if _log_manager is not None:
        _log_manager.shutdown()
        _log_manager = None


# Pre-configured logger instances for common components
app_logger = get_logger("app")
database_logger = get_logger("database")
