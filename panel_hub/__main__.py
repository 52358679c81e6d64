"""
Allow running the hub as a module: python -m panel_hub
"""
import logging
import sys
from typing import Optional

import click

from panel_hub.api import run_server
from panel_hub.config import DEFAULT_ADMIN_PASSWORD, DEFAULT_JWT_SECRET, ConfigError, load_settings
from panel_hub.errors import StorageError
from panel_hub.hub import open_hub
from panel_logging import setup_logging

logger = logging.getLogger('panel_hub')


@click.command()
@click.option('--config', default=None, help='Path to hub YAML config (default: panel-hub.yml)')
@click.option('--host', default=None, help='Host to bind to')
@click.option('--port', default=None, type=int, help='Port to bind to')
@click.option('--require-config', is_flag=True, help='Fail if the config file is missing')
def main(config: Optional[str], host: Optional[str], port: Optional[int], require_config: bool):
    """Run the Panel Hub collector"""
    try:
        settings = load_settings(config, require=require_config)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    if host:
        settings.host = host
    if port:
        settings.port = port

    setup_logging(settings.log_level, settings.log_file, settings.log_json)

    if settings.source is None:
        logger.info("No config file found, using built-in defaults")
    else:
        logger.info("Loaded configuration", extra={'context': {'path': settings.source}})

    try:
        hub = open_hub(settings)
    except (StorageError, OSError) as e:
        logger.critical("Cannot start hub: %s", e)
        sys.exit(1)

    if settings.admin_password == DEFAULT_ADMIN_PASSWORD:
        logger.warning("Administrator account uses the default password",
                       extra={'context': {'username': settings.admin_username}})
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("Tokens are signed with the default secret; set auth.jwt_secret")

    click.echo(f'Starting Panel Hub on {settings.host}:{settings.port}')
    click.echo(f'API documentation at http://localhost:{settings.port}/docs')
    run_server(hub)


if __name__ == '__main__':
    main()
