"""Application settings via pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global configuration for redimo.

    Values can be set via environment variables prefixed with REDIMO_,
    e.g. REDIMO_TABLE_NAME=leaderboards.
    """

    model_config = {"env_prefix": "REDIMO_"}

    # Backend
    backend: Literal["dynamodb", "sqlite"] = "dynamodb"
    table_name: str = "redimo"
    region_name: str | None = None
    endpoint_url: str | None = None
    consistent_reads: bool = True

    # Local SQLite backend
    sqlite_path: Path = Path.home() / ".redimo" / "redimo.db"
    page_size: int | None = None  # caps items per query page, like DynamoDB's 1 MB limit

    # Table layout
    partition_attribute: str = "pk"
    sort_attribute: str = "sk"
    score_attribute: str = "sk2"  # string, order-preserving score
    location_attribute: str = "sk3"  # number, S2 cell id
    index_prefix: str = "lsi_"

    # Sorted sets
    max_increment_attempts: int = 3

    # Logging
    log_level: str = "INFO"  # redimo logger level without --verbose

    # Geo
    geohash_precision: int = 12
    max_covering_cells: int = 8

    @property
    def indexed_attributes(self) -> list[str]:
        return [self.score_attribute, self.location_attribute]
