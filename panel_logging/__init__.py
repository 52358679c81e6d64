"""
panel_logging: structured JSON logging for the hub and the agent

Both processes log one JSON object per line so their output can be shipped
and parsed the same way.
"""

from panel_logging.logger import JSONFormatter, setup_logging, validate_log_format

__all__ = ['JSONFormatter', 'setup_logging', 'validate_log_format']
__version__ = '1.0.0'
