"""
panel_agent: host health collector agent

Samples CPU load, memory usage and CPU temperature and pushes each sample to
panel_hub over HTTP.
"""

from panel_agent.agent import MonitoringAgent
from panel_agent.client import MetricsPusher, PushError
from panel_agent.collectors import CollectionError, MetricData, SystemMetrics

__all__ = ['MonitoringAgent', 'MetricsPusher', 'PushError', 'CollectionError', 'MetricData', 'SystemMetrics']
__version__ = '1.0.0'
