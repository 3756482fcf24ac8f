from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field


class ColumnMeta(BaseModel):
    """Metadata for one column of a result set."""

    name: str
    table: str = ""
    sql_type: str = Field("", alias="type")
    nullable: bool = True
    max_length: int = Field(0, alias="maxLength")

    model_config = {"frozen": True, "populate_by_name": True}


class CacheEntry(BaseModel):
    """A cached query result.

    Written once by a cache store and replaced wholesale on overwrite.
    Serialized with the field aliases (``rowCount``, ``returnValue``,
    ``expiresAt``) so payloads keep the same shape across backends.
    """

    columns: list[ColumnMeta] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = Field(0, alias="rowCount", ge=0)
    return_value: int = Field(0, alias="returnValue")
    expires_at: float = Field(..., alias="expiresAt")

    model_config = {"frozen": True, "populate_by_name": True}

    def is_expired(self, now: float) -> bool:
        """Check whether the entry is stale at ``now`` (unix seconds)."""
        return now > self.expires_at

    def with_expiry(self, expires_at: float) -> "CacheEntry":
        """Return a copy stamped with a new expiry time."""
        return self.model_copy(update={"expires_at": expires_at})

    def to_payload(self) -> dict[str, Any]:
        """Convert to the plain structure stored by the cache backends."""
        return self.model_dump(by_alias=True)


@dataclass
class CacheMetrics:
    """Track cache usage for one executor."""

    lookups: int = 0
    hits: int = 0
    misses: int = 0
    stores: int = 0
    store_failures: int = 0
    skipped: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.lookups == 0:
            return 0.0
        return self.hits / self.lookups

    def record_hit(self) -> None:
        """Record a cache hit."""
        self.lookups += 1
        self.hits += 1

    def record_miss(self) -> None:
        """Record a cache miss."""
        self.lookups += 1
        self.misses += 1

    def record_store(self, stored: bool) -> None:
        """Record a cache write attempt."""
        if stored:
            self.stores += 1
        else:
            self.store_failures += 1

    def record_skip(self) -> None:
        """Record a result that was not eligible for caching."""
        self.skipped += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "lookups": self.lookups,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
            "stores": self.stores,
            "store_failures": self.store_failures,
            "skipped": self.skipped,
        }
