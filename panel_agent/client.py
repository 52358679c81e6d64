"""
HTTP client pushing samples to the hub.
"""
from typing import Optional

import requests

from panel_agent.collectors import MetricData

USER_AGENT = 'panel-agent/1.0.0'


class PushError(Exception):
    """A push did not reach the hub or was not accepted"""
    pass


class MetricsPusher:
    """Posts samples to the hub's ingest endpoint"""

    def __init__(
        self,
        server_url: str,
        node_name: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.server_url = server_url
        self.node_name = node_name
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': USER_AGENT})

    def push(self, metrics: MetricData) -> None:
        """
        Send one sample. Nothing is retried or buffered.

        Raises:
            PushError: network failure, timeout or non-200 response
        """
        try:
            response = self.session.post(
                self.server_url,
                json=metrics.to_payload(),
                headers={'Node-Name': self.node_name},
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise PushError(f"Timeout after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise PushError(f"Failed to send request: {e}") from e

        if response.status_code != 200:
            raise PushError(f"Server returned status: {response.status_code}")

    def test_connection(self) -> None:
        """
        Check that the hub answers at all; any HTTP status counts.

        Raises:
            PushError: the server could not be reached
        """
        try:
            self.session.get(self.server_url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise PushError(f"Failed to connect to server: {e}") from e

    def close(self) -> None:
        self.session.close()
