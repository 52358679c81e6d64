"""
Wiring of the hub components around one storage handle.
"""
import logging
from datetime import timedelta

from panel_hub.auth import AuthService, CredentialStore
from panel_hub.config import HubSettings
from panel_hub.db import Database, storage_errors
from panel_hub.ingest import IngestService
from panel_hub.metrics import MetricsStore
from panel_hub.registry import NodeRegistry

logger = logging.getLogger(__name__)


class Hub:
    """All hub components, sharing the Database they were built with"""

    def __init__(self, db: Database, settings: HubSettings, bcrypt_rounds: int = 12):
        self.db = db
        self.settings = settings
        self.credentials = CredentialStore(db, rounds=bcrypt_rounds)
        self.auth = AuthService(
            self.credentials,
            secret=settings.jwt_secret,
            token_ttl=timedelta(hours=settings.token_ttl_hours)
        )
        self.registry = NodeRegistry(db)
        self.metrics = MetricsStore(db)
        self.ingest = IngestService(db, self.registry, self.metrics)

    def bootstrap(self) -> None:
        """Create the schema and the administrator account if missing"""
        self.db.init_schema()
        self.credentials.bootstrap_admin(self.settings.admin_username, self.settings.admin_password)

    def close(self) -> None:
        self.db.close()


def open_hub(settings: HubSettings, bcrypt_rounds: int = 12) -> Hub:
    """
    Open the database and bootstrap it.

    Raises:
        StorageError: the database could not be opened or initialized
    """
    with storage_errors("Failed to open database"):
        db = Database(settings.database_url)

    hub = Hub(db, settings, bcrypt_rounds=bcrypt_rounds)
    try:
        with storage_errors("Failed to initialize database"):
            hub.bootstrap()
    except Exception:
        hub.close()
        raise

    logger.info("Hub storage ready", extra={'context': {'dialect': db.dialect}})
    return hub
