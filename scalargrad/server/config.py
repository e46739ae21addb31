"""Server configuration via environment variables."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """scalargrad-server configuration. All values from env vars or .env file."""

    # Server
    host: str = "127.0.0.1"
    port: int = 18791
    log_level: str = "info"

    # Auth
    api_key: str = ""  # empty = no auth required

    # Snapshot database
    db_path: str = "scalargrad.db"
    seed: Optional[int] = None

    # Request limits (training is synchronous and runs in the request thread)
    max_epochs: int = 5000
    max_records: int = 10000

    model_config = {"env_prefix": "SCALARGRAD_", "env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def db_path_resolved(self) -> Path:
        return Path(self.db_path).resolve()


# Singleton; import this everywhere instead of creating new Settings()
settings = Settings()
