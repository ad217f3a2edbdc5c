"""
Structured logging setup for icy_nowplaying
"""

import logging
import os
import json
from datetime import datetime
from typing import Optional

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = {
    'timestamp', 'level', 'message', 'args', 'exc_info', 'exc_text', 'msg',
    'created', 'msecs', 'relativeCreated', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'funcName', 'lineno', 'processName', 'process',
    'threadName', 'thread', 'name', 'stack_info', 'taskName',
}


class StructuredLogger:
    """Logger wrapper that takes keyword fields and emits them as JSON extras.

    Without a console level or log files nothing is attached and records
    propagate to whatever logging the host application configured.
    """

    def __init__(self, name: str, log_file: Optional[str] = None,
                 friendly_log_file: Optional[str] = None, level: Optional[str] = None):
        self.logger = logging.getLogger(name)

        self.json_formatter = JsonFormatter()
        self.friendly_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        )

        # get_logger() may be called repeatedly for the same name; add what is missing
        self.setup_file_handlers(log_file, friendly_log_file)
        if level:
            self.setup_console_handler(level)
        if self.logger.handlers:
            self.logger.setLevel(logging.DEBUG)
            self.logger.propagate = False

    def _has_file_handler(self, path: str) -> bool:
        path = os.path.abspath(path)
        return any(isinstance(handler, logging.FileHandler) and handler.baseFilename == path
                   for handler in self.logger.handlers)

    def setup_file_handlers(self, log_file: Optional[str], friendly_log_file: Optional[str] = None):
        """Set up file handlers for logging"""
        if log_file and not self._has_file_handler(log_file):
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(self.json_formatter)
            self.logger.addHandler(file_handler)

        if friendly_log_file and not self._has_file_handler(friendly_log_file):
            friendly_handler = logging.FileHandler(friendly_log_file)
            friendly_handler.setFormatter(self.friendly_formatter)
            self.logger.addHandler(friendly_handler)

    def setup_console_handler(self, level: str = 'INFO'):
        """Set up console handler for logging, or retune the existing one"""
        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            raise ValueError(f"Unknown log level: {level}")

        for handler in self.logger.handlers:
            if getattr(handler, 'is_console', False):
                handler.setLevel(numeric_level)
                return

        console_handler = logging.StreamHandler()
        console_handler.is_console = True
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(self.friendly_formatter)
        self.logger.addHandler(console_handler)

    def _log(self, level: int, msg: str, exc_info: bool = False, **kwargs):
        extra = {
            'timestamp': datetime.now().isoformat(),
            **kwargs
        }
        self.logger.log(level, msg, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, **kwargs):
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs):
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs):
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, **kwargs)

    def exception(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, exc_info=True, **kwargs)


class JsonFormatter(logging.Formatter):
    """Formatter that outputs JSON strings"""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': getattr(record, 'timestamp', datetime.now().isoformat()),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_obj[key] = value

        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def get_logger(name: str, log_file: Optional[str] = None,
               friendly_log_file: Optional[str] = None, level: Optional[str] = None) -> StructuredLogger:
    """Get a configured logger instance"""
    return StructuredLogger(name, log_file, friendly_log_file, level)
