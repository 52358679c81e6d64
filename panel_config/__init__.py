"""
panel_config: YAML settings helpers shared by the hub and the agent
"""

from panel_config.loader import (
    LOG_LEVELS,
    ConfigError,
    log_level,
    positive_number,
    read_config_file,
    section,
)

__all__ = ['LOG_LEVELS', 'ConfigError', 'log_level', 'positive_number', 'read_config_file', 'section']
