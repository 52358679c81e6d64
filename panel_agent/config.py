"""
Agent configuration: YAML file, environment overrides, built-in defaults.
"""
import os
import socket
from dataclasses import dataclass, field
from typing import Mapping, Optional

from panel_config import ConfigError, log_level, positive_number, read_config_file, section

DEFAULT_CONFIG_PATH = '/etc/panel/agent.yml'
DEFAULT_SERVER_URL = 'http://localhost:8080/api/metrics'


@dataclass
class AgentSettings:
    server_url: str = DEFAULT_SERVER_URL
    timeout: float = 10.0
    node_name: str = field(default_factory=socket.gethostname)
    interval: int = 30
    collect_cpu: bool = True
    collect_memory: bool = True
    collect_temp: bool = True
    log_level: str = 'INFO'
    log_json: bool = True
    log_file: Optional[str] = None
    # Path the settings were read from; None means built-in defaults
    source: Optional[str] = None


def load_settings(
    config_path: Optional[str] = None,
    require: bool = False,
    environ: Optional[Mapping[str, str]] = None
) -> AgentSettings:
    """
    Build agent settings from defaults, the YAML file and the environment.

    A missing file means built-in defaults unless `require` is set.
    PANEL_SERVER_URL and PANEL_NODE_NAME override the file.

    Raises:
        ConfigError: the file or one of its values is invalid
    """
    environ = os.environ if environ is None else environ
    path = config_path or DEFAULT_CONFIG_PATH
    data = read_config_file(path, require=require)

    settings = AgentSettings()
    if data is not None:
        server = section(data, 'server')
        agent = section(data, 'agent')
        collector = section(data, 'collector')
        logging_section = section(data, 'logging')

        settings = AgentSettings(
            server_url=str(server.get('url') or settings.server_url),
            timeout=positive_number(server, 'timeout', settings.timeout, kind=float),
            node_name=str(agent.get('node_name') or settings.node_name),
            interval=positive_number(agent, 'interval', settings.interval),
            collect_cpu=bool(collector.get('cpu', True)),
            collect_memory=bool(collector.get('memory', True)),
            collect_temp=bool(collector.get('temp', True)),
            log_level=log_level(logging_section, settings.log_level),
            log_json=bool(logging_section.get('json', settings.log_json)),
            log_file=logging_section.get('file') or None,
            source=path,
        )

    if environ.get('PANEL_SERVER_URL'):
        settings.server_url = environ['PANEL_SERVER_URL']
    if environ.get('PANEL_NODE_NAME'):
        settings.node_name = environ['PANEL_NODE_NAME']

    return settings
