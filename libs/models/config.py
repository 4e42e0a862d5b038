# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides Pydantic Settings models for the backfill and its document stores:
# - BackfillSettings: paging, batching, back-pressure and timeout tunables
# - MongoSettings: MongoDB document store configuration
# - FirestoreSettings: Firestore document store configuration
# - StoreSettings: selects which document store backend to use
# =============================================================================

from enum import Enum
from typing import Any, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "RATE_LIMIT_PRESETS",
    "BackfillSettings",
    "MongoSettings",
    "FirestoreSettings",
    "StoreBackend",
    "StoreSettings",
]


# Rate-limit presets offered to operators. "normal" matches the defaults.
RATE_LIMIT_PRESETS: dict[str, dict[str, Any]] = {
    "conservative": {
        "page_size": 25,
        "batch_size": 5,
        "batch_delay_seconds": 3.0,
        "page_delay_seconds": 5.0,
    },
    "normal": {
        "page_size": 50,
        "batch_size": 10,
        "batch_delay_seconds": 2.0,
        "page_delay_seconds": 3.0,
    },
    "aggressive": {
        "page_size": 100,
        "batch_size": 25,
        "batch_delay_seconds": 1.0,
        "page_delay_seconds": 1.0,
    },
}


# =============================================================================
# Backfill Settings
# =============================================================================

class BackfillSettings(BaseSettings):
    """
    Tunables for the paged, batched backfill.

    Maps environment variables with prefix "BACKFILL_":
    - BACKFILL_PAGE_SIZE → page_size
    - BACKFILL_BATCH_SIZE → batch_size
    - BACKFILL_BATCH_DELAY_SECONDS → batch_delay_seconds
    - BACKFILL_PAGE_DELAY_SECONDS → page_delay_seconds
    - BACKFILL_COLLECTION_DELAY_SECONDS → collection_delay_seconds
    - BACKFILL_COLLECTION_TIMEOUT_SECONDS → collection_timeout_seconds
    - BACKFILL_TIMEOUT_GRACE_SECONDS → timeout_grace_seconds
    - BACKFILL_PROGRESS_INTERVAL → progress_interval
    - BACKFILL_VALIDATION_PAGE_SIZE → validation_page_size
    - BACKFILL_ROLLBACK_BATCH_SIZE → rollback_batch_size
    - BACKFILL_MAX_BATCH_OPERATIONS → max_batch_operations
    - BACKFILL_AUDIT_COLLECTION → audit_collection
    - BACKFILL_AUDIT_RECORD_KEY → audit_record_key
    - BACKFILL_AUDIT_VERSION → audit_version

    Batches are strictly smaller than pages so a single commit never carries
    a whole page of writes.
    """

    page_size: int = Field(50, gt=0, validation_alias="BACKFILL_PAGE_SIZE", description="Documents fetched per page")
    batch_size: int = Field(10, gt=0, validation_alias="BACKFILL_BATCH_SIZE", description="Updates per committed batch")
    batch_delay_seconds: float = Field(2.0, ge=0, validation_alias="BACKFILL_BATCH_DELAY_SECONDS", description="Pause between batch commits within a page")
    page_delay_seconds: float = Field(3.0, ge=0, validation_alias="BACKFILL_PAGE_DELAY_SECONDS", description="Pause before fetching the next page")
    collection_delay_seconds: float = Field(0.5, ge=0, validation_alias="BACKFILL_COLLECTION_DELAY_SECONDS", description="Pause between collections")
    collection_timeout_seconds: float = Field(30 * 60, gt=0, validation_alias="BACKFILL_COLLECTION_TIMEOUT_SECONDS", description="Ceiling per collection, not counting time spent paused")
    timeout_grace_seconds: float = Field(30.0, ge=0, validation_alias="BACKFILL_TIMEOUT_GRACE_SECONDS", description="Wait for a timed-out collection to stop before abandoning its worker")
    progress_interval: int = Field(10, gt=0, validation_alias="BACKFILL_PROGRESS_INTERVAL", description="Documents between progress events")
    validation_page_size: int = Field(500, gt=0, validation_alias="BACKFILL_VALIDATION_PAGE_SIZE", description="Page size used by the validator")
    rollback_batch_size: int = Field(500, gt=0, validation_alias="BACKFILL_ROLLBACK_BATCH_SIZE", description="Field deletions per rollback batch")
    max_batch_operations: int = Field(500, gt=0, validation_alias="BACKFILL_MAX_BATCH_OPERATIONS", description="Store ceiling on operations per batch")
    audit_collection: str = Field("migrations", validation_alias="BACKFILL_AUDIT_COLLECTION", description="Collection holding the run record")
    audit_record_key: str = Field("phase3-provinceId", validation_alias="BACKFILL_AUDIT_RECORD_KEY", description="Key of the last-run record")
    audit_version: str = Field("3.0.0", validation_alias="BACKFILL_AUDIT_VERSION", description="Version stamped on the run record")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def check_batch_bounds(self) -> "BackfillSettings":
        if self.batch_size >= self.page_size:
            raise ValueError(
                f"batch_size ({self.batch_size}) must be smaller than page_size ({self.page_size})"
            )
        if self.batch_size > self.max_batch_operations:
            raise ValueError(
                f"batch_size ({self.batch_size}) exceeds max_batch_operations ({self.max_batch_operations})"
            )
        if self.rollback_batch_size > self.max_batch_operations:
            raise ValueError(
                f"rollback_batch_size ({self.rollback_batch_size}) exceeds "
                f"max_batch_operations ({self.max_batch_operations})"
            )
        return self

    @classmethod
    def for_mode(cls, mode: str, **overrides: Any) -> "BackfillSettings":
        """
        Build settings from a named rate-limit preset.

        Args:
            mode: One of "conservative", "normal", "aggressive"
            **overrides: Field values applied on top of the preset

        Raises:
            ValueError: If the mode is unknown
        """
        if mode not in RATE_LIMIT_PRESETS:
            raise ValueError(
                f"Unknown rate-limit mode '{mode}'. Expected one of: {', '.join(RATE_LIMIT_PRESETS)}"
            )
        return cls(**{**RATE_LIMIT_PRESETS[mode], **overrides})


# =============================================================================
# MongoDB Settings
# =============================================================================

class MongoSettings(BaseSettings):
    """
    Configuration for the MongoDB document store.

    Maps environment variables with prefix "MONGO_":
    - MONGO_HOST → host
    - MONGO_PORT → port
    - MONGO_INITDB_ROOT_USERNAME → username
    - MONGO_INITDB_ROOT_PASSWORD → password
    - MONGO_DATABASE → database
    - MONGO_AUTH_SOURCE → auth_source
    - MONGO_SOCKET_TIMEOUT_MS → socket_timeout_ms

    Attributes:
        host: MongoDB host (default: "mongodb")
        port: MongoDB port (default: 27017)
        username: MongoDB username (maps from MONGO_INITDB_ROOT_USERNAME)
        password: MongoDB password (maps from MONGO_INITDB_ROOT_PASSWORD)
        database: Database name (default: "dealership_erp")
        auth_source: Authentication source (default: "admin")
        socket_timeout_ms: Ceiling on a single network operation (default: 60000)
    """

    host: str = Field("mongodb", validation_alias="MONGO_HOST", description="MongoDB host")
    port: int = Field(27017, validation_alias="MONGO_PORT", description="MongoDB port")
    username: str = Field(..., validation_alias="MONGO_INITDB_ROOT_USERNAME", description="MongoDB username (maps from MONGO_INITDB_ROOT_USERNAME)")
    password: str = Field(..., validation_alias="MONGO_INITDB_ROOT_PASSWORD", description="MongoDB password (maps from MONGO_INITDB_ROOT_PASSWORD)")
    database: str = Field("dealership_erp", validation_alias="MONGO_DATABASE", description="Database name")
    auth_source: str = Field("admin", validation_alias="MONGO_AUTH_SOURCE", description="Authentication source")
    socket_timeout_ms: int = Field(60000, gt=0, validation_alias="MONGO_SOCKET_TIMEOUT_MS", description="Ceiling on any single MongoDB read or write")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )

    @property
    def connection_string(self) -> str:
        """
        Build MongoDB connection URI.

        Format: mongodb://[username]:[password]@[host]:[port]/[database]?authSource=[auth_source]

        Returns:
            MongoDB connection URI string
        """
        return (
            f"mongodb://{self.username}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?authSource={self.auth_source}"
        )


# =============================================================================
# Firestore Settings
# =============================================================================

class FirestoreSettings(BaseSettings):
    """
    Configuration for the Firestore document store.

    Maps environment variables:
    - GOOGLE_APPLICATION_CREDENTIALS → credentials_path
    - FIREBASE_PROJECT_ID → project_id
    - FIRESTORE_REQUEST_TIMEOUT_SECONDS → request_timeout_seconds

    When no credentials file is given, Application Default Credentials are used.
    """

    credentials_path: Optional[str] = Field(None, validation_alias="GOOGLE_APPLICATION_CREDENTIALS", description="Service account JSON path")
    project_id: Optional[str] = Field(None, validation_alias="FIREBASE_PROJECT_ID", description="Firebase project id")
    request_timeout_seconds: float = Field(60.0, gt=0, validation_alias="FIRESTORE_REQUEST_TIMEOUT_SECONDS", description="Ceiling on any single Firestore query or commit")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# =============================================================================
# Store Selection
# =============================================================================

class StoreBackend(str, Enum):
    MONGO = "mongo"
    FIRESTORE = "firestore"


class StoreSettings(BaseSettings):
    """Selects the document store backend (BACKFILL_STORE=mongo|firestore)."""

    backend: StoreBackend = Field(StoreBackend.MONGO, validation_alias="BACKFILL_STORE", description="Document store backend")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )
