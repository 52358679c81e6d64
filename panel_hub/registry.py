"""
Node registry: maps an observed IP address to one node record.
"""
from datetime import datetime
from typing import Callable, List

from panel_hub.db import Database, storage_errors
from panel_hub.errors import NotFoundError
from panel_hub.models import Node, utcnow

NODE_COLUMNS = "id, name, ip, status, last_seen"


class NodeRegistry:
    """Owns the nodes table. Nodes are created and refreshed, never deleted."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def upsert_node(self, name: str, ip: str, conn=None) -> int:
        """
        Create the node for `ip` or refresh it, in a single statement.

        The unique constraint on ip resolves concurrent first-sight inserts,
        so two agents pushing from a new address at once still produce one row.

        Args:
            name: Display name reported by the agent
            ip: Resolved client address
            conn: Optional open connection to join the caller's transaction

        Returns: id of the node row
        """
        query = """
            INSERT INTO nodes (name, ip, status, last_seen)
            VALUES (?, ?, 'online', ?)
            ON CONFLICT (ip) DO UPDATE SET
                name = excluded.name,
                status = 'online',
                last_seen = excluded.last_seen
            RETURNING id
        """

        with storage_errors("Failed to update node info"):
            with self.db.connection(conn) as c:
                row = self.db.fetchone(c, query, (name, ip, self.db.to_db_time(self.clock())))

        return row['id']

    def get_node_by_ip(self, ip: str) -> Node:
        query = f"SELECT {NODE_COLUMNS} FROM nodes WHERE ip = ?"

        with storage_errors("Failed to get node info"):
            with self.db.connection() as conn:
                row = self.db.fetchone(conn, query, (ip,))

        if row is None:
            raise NotFoundError("Node not found")
        return Node(**row)

    def get_node(self, node_id: int) -> Node:
        query = f"SELECT {NODE_COLUMNS} FROM nodes WHERE id = ?"

        with storage_errors("Failed to get node info"):
            with self.db.connection() as conn:
                row = self.db.fetchone(conn, query, (node_id,))

        if row is None:
            raise NotFoundError("Node not found")
        return Node(**row)

    def list_nodes(self) -> List[Node]:
        """All nodes in insertion (id) order"""
        query = f"SELECT {NODE_COLUMNS} FROM nodes ORDER BY id ASC"

        with storage_errors("Failed to get nodes"):
            with self.db.connection() as conn:
                rows = self.db.fetchall(conn, query)

        return [Node(**row) for row in rows]
