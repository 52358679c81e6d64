"""
Ingestion of samples pushed by agents.
"""
import logging
from typing import Mapping, Optional

from panel_hub.db import Database, storage_errors
from panel_hub.metrics import MetricsStore
from panel_hub.models import MetricsPayload, MetricsSample
from panel_hub.registry import NodeRegistry

logger = logging.getLogger(__name__)

UNKNOWN_PEER = 'unknown'


def resolve_client_ip(headers: Mapping[str, str], peer: Optional[str]) -> str:
    """
    Pick the address that identifies the pushing node.

    Order: X-Real-IP, then the first X-Forwarded-For entry, then the transport
    peer. The headers are taken on trust, so any client can claim another
    node's identity by setting them.
    """
    real_ip = (headers.get('x-real-ip') or '').strip()
    if real_ip:
        return real_ip

    forwarded = (headers.get('x-forwarded-for') or '').split(',')[0].strip()
    if forwarded:
        return forwarded

    return peer or UNKNOWN_PEER


class IngestService:
    """Registers the pushing node and stores its sample as one unit"""

    def __init__(self, db: Database, registry: NodeRegistry, store: MetricsStore):
        self.db = db
        self.registry = registry
        self.store = store

    def ingest(self, node_name: Optional[str], ip: str, payload: MetricsPayload) -> MetricsSample:
        """
        Upsert the node for `ip` and append the sample in one transaction.

        Args:
            node_name: Name from the Node-Name header; the ip is used when empty
            ip: Resolved client address
            payload: Sample fields pushed by the agent

        Returns: the stored sample
        """
        name = (node_name or '').strip() or ip

        with storage_errors("Failed to save metrics"):
            with self.db.connection() as conn:
                node_id = self.registry.upsert_node(name, ip, conn=conn)
                sample = self.store.append(payload.bind(node_id), conn=conn)

        logger.debug(
            "Metrics received",
            extra={'context': {'node_id': node_id, 'ip': ip, 'sample_id': sample.id}}
        )
        return sample
