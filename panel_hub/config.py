"""
Hub configuration: YAML file, environment overrides, built-in defaults.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from panel_config import ConfigError, log_level, positive_number, read_config_file, section

DEFAULT_CONFIG_PATH = 'panel-hub.yml'
DEFAULT_JWT_SECRET = 'panel-hub-secret-key-change-in-production'
DEFAULT_ADMIN_PASSWORD = 'admin123'


@dataclass
class HubSettings:
    host: str = '0.0.0.0'
    port: int = 8080
    database_url: str = 'panel.db'
    jwt_secret: str = DEFAULT_JWT_SECRET
    token_ttl_hours: int = 24
    admin_username: str = 'admin'
    admin_password: str = DEFAULT_ADMIN_PASSWORD
    log_level: str = 'INFO'
    log_json: bool = True
    log_file: Optional[str] = None
    # Path the settings were read from; None means built-in defaults
    source: Optional[str] = None


def load_settings(
    config_path: Optional[str] = None,
    require: bool = False,
    environ: Optional[Mapping[str, str]] = None
) -> HubSettings:
    """
    Build hub settings from defaults, the YAML file and the environment.

    A missing file means built-in defaults unless `require` is set.
    PANEL_DATABASE_URL and PANEL_JWT_SECRET override the file.

    Raises:
        ConfigError: the file or one of its values is invalid
    """
    environ = os.environ if environ is None else environ
    defaults = HubSettings()
    path = config_path or DEFAULT_CONFIG_PATH
    data = read_config_file(path, require=require)

    settings = HubSettings()
    if data is not None:
        server = section(data, 'server')
        database = section(data, 'database')
        auth = section(data, 'auth')
        logging_section = section(data, 'logging')

        port = positive_number(server, 'port', defaults.port)
        if port > 65535:
            raise ConfigError(f"Invalid port: {port}")

        settings = HubSettings(
            host=str(server.get('host', defaults.host)),
            port=port,
            database_url=str(database.get('url') or database.get('path') or defaults.database_url),
            jwt_secret=str(auth.get('jwt_secret') or defaults.jwt_secret),
            token_ttl_hours=positive_number(auth, 'token_ttl_hours', defaults.token_ttl_hours),
            admin_username=str(auth.get('admin_username') or defaults.admin_username),
            admin_password=str(auth.get('admin_password') or defaults.admin_password),
            log_level=log_level(logging_section, defaults.log_level),
            log_json=bool(logging_section.get('json', defaults.log_json)),
            log_file=logging_section.get('file') or None,
            source=str(Path(path)),
        )

    if environ.get('PANEL_DATABASE_URL'):
        settings.database_url = environ['PANEL_DATABASE_URL']
    if environ.get('PANEL_JWT_SECRET'):
        settings.jwt_secret = environ['PANEL_JWT_SECRET']

    return settings
