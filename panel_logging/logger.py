"""
JSON log formatting and logger setup shared by panel_hub and panel_agent.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Union

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
VALID_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

# Marks handlers installed by setup_logging so repeated calls replace them
_HANDLER_TAG = '_panel_logging'


class JSONFormatter(logging.Formatter):
    """
    Formats records as single-line JSON.

    Output format:
    {
        "timestamp": "2026-10-18T05:54:00.123456Z",
        "level": "INFO",
        "logger": "panel_hub.api",
        "message": "Metrics received",
        "context": {"node_id": 3, "ip": "10.0.0.7"}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_data = {
            'timestamp': created.strftime('%Y-%m-%dT%H:%M:%S.%fZ'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        # logger.info(..., extra={'context': {...}})
        context = getattr(record, 'context', None)
        if context:
            log_data['context'] = context

        if record.exc_info and record.exc_info[0] is not None:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        if record.levelno <= logging.DEBUG:
            log_data['source'] = {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName
            }

        return json.dumps(log_data, default=str)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    name = str(level).upper()
    if name not in VALID_LEVELS:
        raise ValueError(f"Unknown log level: {level}")
    return getattr(logging, name)


def _build_handler(handler: logging.Handler, level: int, use_json: bool) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if use_json else logging.Formatter(PLAIN_FORMAT))
    return handler


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    use_json: bool = True
) -> logging.Logger:
    """
    Configure the root logger for a panel process.

    Safe to call more than once: handlers installed by a previous call are
    replaced, handlers added by anything else are left alone.

    Args:
        level: Level name or number for the root logger
        log_file: Optional file to log to in addition to stderr
        use_json: Use JSONFormatter (default) or a plain text line format

    Returns:
        The root logger
    """
    numeric_level = _resolve_level(level)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    handlers = [_build_handler(logging.StreamHandler(), numeric_level, use_json)]
    if log_file:
        handlers.append(_build_handler(logging.FileHandler(log_file), numeric_level, use_json))

    for handler in handlers:
        setattr(handler, _HANDLER_TAG, True)
        root.addHandler(handler)

    return root


def validate_log_format(log_line: str) -> bool:
    """Return True if log_line is a JSON object with the required fields and a known level"""
    try:
        data = json.loads(log_line)
    except (json.JSONDecodeError, TypeError):
        return False

    if not isinstance(data, dict):
        return False

    required_fields = ('timestamp', 'level', 'logger', 'message')
    if not all(field in data for field in required_fields):
        return False

    return data['level'] in VALID_LEVELS
