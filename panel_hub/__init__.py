"""
panel_hub: central collector for host health samples

Receives samples pushed by panel_agent, keeps one record per node and a time
series of samples, and serves them to authenticated dashboard clients.
"""

from panel_hub.api import create_app
from panel_hub.hub import Hub, open_hub

__all__ = ['create_app', 'Hub', 'open_hub']
__version__ = '1.0.0'
