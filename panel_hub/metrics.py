"""
Metrics store: append-only time series of samples per node.
"""
from datetime import datetime, timedelta
from typing import Callable, List

from panel_hub.db import INTEGRITY_ERRORS, Database, storage_errors
from panel_hub.errors import NotFoundError
from panel_hub.models import MetricsSample, utcnow

SAMPLE_COLUMNS = (
    "id, node_id, cpu_percent, memory_total, memory_used, memory_percent, cpu_temp, timestamp"
)


# Samples older than 1970 are never accepted, so a century covers all history
MAX_WINDOW_DAYS = 36500


def normalize_days(days: int) -> int:
    """Clamp a history window to 1..MAX_WINDOW_DAYS days"""
    if days < 1:
        return 1
    return min(days, MAX_WINDOW_DAYS)


class MetricsStore:
    """Owns the samples table. Samples are immutable once written."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def append(self, sample: MetricsSample, conn=None) -> MetricsSample:
        """
        Store one sample for an existing node.

        A sample without a timestamp gets the server's current time.

        Args:
            sample: Sample bound to a node id
            conn: Optional open connection to join the caller's transaction

        Returns: the stored sample, with its id and timestamp set

        Raises:
            NotFoundError: node_id does not reference a node
            StorageError: the insert failed
        """
        timestamp = sample.timestamp or self.clock()
        query = """
            INSERT INTO samples (
                node_id, cpu_percent, memory_total, memory_used,
                memory_percent, cpu_temp, timestamp
            ) VALUES (
                ?, ?, ?, ?, ?, ?, ?
            )
            RETURNING id
        """
        params = (
            sample.node_id, sample.cpu_percent, sample.memory_total, sample.memory_used,
            sample.memory_percent, sample.cpu_temp, self.db.to_db_time(timestamp)
        )

        with storage_errors("Failed to save metrics"):
            try:
                with self.db.connection(conn) as c:
                    row = self.db.fetchone(c, query, params)
            except INTEGRITY_ERRORS as e:
                raise NotFoundError("Node not found") from e

        return sample.model_copy(update={'id': row['id'], 'timestamp': timestamp})

    def latest(self, node_id: int) -> MetricsSample:
        """Most recent sample for a node; ties on timestamp go to the last inserted"""
        query = f"""
            SELECT {SAMPLE_COLUMNS}
            FROM samples
            WHERE node_id = ?
            ORDER BY timestamp DESC, id DESC
            LIMIT 1
        """

        with storage_errors("Failed to get realtime metrics"):
            with self.db.connection() as conn:
                row = self.db.fetchone(conn, query, (node_id,))

        if row is None:
            raise NotFoundError("No metrics found for this node")
        return MetricsSample(**row)

    def range(self, node_id: int, window_days: int) -> List[MetricsSample]:
        """
        Samples from the last `window_days` days, newest first.

        Args:
            node_id: Node to read
            window_days: Window length, clamped by normalize_days

        Returns: samples with now - window_days <= timestamp <= now
        """
        now = self.clock()
        since = now - timedelta(days=normalize_days(window_days))
        query = f"""
            SELECT {SAMPLE_COLUMNS}
            FROM samples
            WHERE node_id = ?
              AND timestamp >= ?
              AND timestamp <= ?
            ORDER BY timestamp DESC, id DESC
        """

        with storage_errors("Failed to get history metrics"):
            with self.db.connection() as conn:
                rows = self.db.fetchall(
                    conn, query, (node_id, self.db.to_db_time(since), self.db.to_db_time(now))
                )

        return [MetricsSample(**row) for row in rows]
