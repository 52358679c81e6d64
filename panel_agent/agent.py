#!/usr/bin/env python3
"""
Collector agent - samples the host on a fixed interval and pushes to the hub.
"""
import logging
import signal
import sys
import threading
from typing import Optional

import click

from panel_agent.client import MetricsPusher, PushError
from panel_agent.collectors import CollectionError, SystemMetrics
from panel_agent.config import ConfigError, load_settings
from panel_logging import setup_logging

logger = logging.getLogger(__name__)

GIB = 1024 ** 3


class MonitoringAgent:
    """
    Main agent loop.

    One tick runs immediately, then one per interval. A tick samples the host
    and pushes synchronously, so a slow push delays the next tick. A stop
    request takes effect between ticks; a push in flight is not drained.
    """

    def __init__(self, collector: SystemMetrics, pusher: MetricsPusher, interval: int = 30):
        self.collector = collector
        self.pusher = pusher
        self.interval = interval
        self._stop = threading.Event()

    def install_signal_handlers(self):
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

    def _handle_shutdown(self, signum, frame):
        logger.info("Received signal %s, shutting down", signum)
        self.stop()

    def stop(self):
        self._stop.set()

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    def run(self):
        """Tick until stopped"""
        logger.info("Agent started", extra={'context': {
            'node_name': self.pusher.node_name,
            'server_url': self.pusher.server_url,
            'interval': self.interval,
        }})

        try:
            self.tick()
            while not self._stop.wait(self.interval):
                self.tick()
        finally:
            self.pusher.close()
            logger.info("Agent stopped")

    def tick(self) -> bool:
        """
        Sample once and push once.

        Returns: True if the sample reached the hub. Failures are logged and
        the sample is dropped.
        """
        try:
            metrics = self.collector.collect()
        except CollectionError as e:
            logger.error("Collection failed: %s", e)
            return False

        logger.info(
            "Collected - CPU: %.2f%%, Mem: %.2f%% (%.2fGB/%.2fGB), CPU temp: %.1fC",
            metrics.cpu_percent,
            metrics.memory_percent,
            metrics.memory_used / GIB,
            metrics.memory_total / GIB,
            metrics.cpu_temp
        )

        try:
            self.pusher.push(metrics)
        except PushError as e:
            logger.warning("Push failed, sample dropped: %s", e)
            return False

        logger.debug("Push succeeded")
        return True


@click.command()
@click.option('--config', default=None, help='Path to agent YAML config (default: /etc/panel/agent.yml)')
@click.option('--node-name', default=None, help='Node display name (default: hostname)')
@click.option('--interval', default=None, type=click.IntRange(min=1), help='Sampling interval in seconds')
@click.option('--require-config', is_flag=True, help='Fail if the config file is missing')
def main(config: Optional[str], node_name: Optional[str], interval: Optional[int], require_config: bool):
    """Run the collector agent"""
    try:
        settings = load_settings(config, require=require_config)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    if node_name:
        settings.node_name = node_name
    if interval:
        settings.interval = interval

    setup_logging(settings.log_level, settings.log_file, settings.log_json)

    if settings.source is None:
        logger.info("No config file found, using built-in defaults")

    collector = SystemMetrics(
        enable_cpu=settings.collect_cpu,
        enable_memory=settings.collect_memory,
        enable_temp=settings.collect_temp
    )
    pusher = MetricsPusher(settings.server_url, settings.node_name, timeout=settings.timeout)

    try:
        pusher.test_connection()
        logger.info("Server connection OK")
    except PushError as e:
        logger.warning("Cannot reach server, will keep trying on schedule: %s", e)

    agent = MonitoringAgent(collector, pusher, interval=settings.interval)
    agent.install_signal_handlers()
    agent.run()


if __name__ == '__main__':
    main()
