"""Configuration - Environment driven settings for the service.

Read once at process start and passed down explicitly.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping

from ..core.models import DEFAULT_CALORIE_GOAL


STORE_FIRESTORE = "firestore"
STORE_MEMORY = "memory"

DEFAULT_CORS_ORIGINS = ("https://nutrilog.app", "http://localhost:5173")


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
    """

    project_id: str | None = None
    database: str | None = None


@dataclass
class AppConfig:
    """Settings for one server process.

    Attributes:
        store: Which repository backs the engine ("firestore" or "memory")
        firestore: Firestore connection settings
        host: Interface to bind
        port: Port to bind
        base_url: Public URL used in registration instructions
        log_level: Root logging level name
        cors_origins: Origins allowed to call the HTTP routes
        default_calorie_goal: Calorie goal given to newly registered users
    """

    store: str = STORE_FIRESTORE
    firestore: FirestoreConfig = field(default_factory=FirestoreConfig)
    host: str = "0.0.0.0"
    port: int = 8080
    base_url: str = "http://localhost:8080"
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    default_calorie_goal: int = DEFAULT_CALORIE_GOAL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build settings from environment variables.

        Raises:
            ValueError: If a setting has an unusable value
        """
        env = os.environ if environ is None else environ

        store = env.get("NUTRILOG_STORE", STORE_FIRESTORE).strip().lower()
        if store not in (STORE_FIRESTORE, STORE_MEMORY):
            raise ValueError(f"NUTRILOG_STORE must be '{STORE_FIRESTORE}' or '{STORE_MEMORY}', got '{store}'")

        cors = env.get("CORS_ORIGINS", "")
        origins = [o.strip() for o in cors.split(",") if o.strip()] or list(DEFAULT_CORS_ORIGINS)

        port = int(env.get("PORT", "8080"))

        return cls(
            store=store,
            firestore=FirestoreConfig(
                project_id=env.get("GOOGLE_CLOUD_PROJECT") or None,
                database=env.get("FIRESTORE_DATABASE", "nutrilog"),
            ),
            host=env.get("HOST", "0.0.0.0"),
            port=port,
            base_url=env.get("BASE_URL", f"http://localhost:{port}"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            cors_origins=origins,
            default_calorie_goal=int(env.get("DEFAULT_CALORIE_GOAL", str(DEFAULT_CALORIE_GOAL))),
        )
