"""
Process-wide cache of resolved category schemas.

Entries are keyed by ``(category_id, variant)`` and expire after a TTL. Every
administrative edit of a category or its fields must call ``invalidate``.
Each category carries a generation number that ``invalidate`` bumps; a load
that started under an older generation is not stored, so a schema read before
a field was removed can never be cached after the removal.
"""

import time
from typing import Callable, Dict, Optional, Tuple

from loguru import logger

from marketplace.core.config import settings
from marketplace.core.metrics import record_schema_cache_event
from marketplace.db.models.category import SchemaVariant
from marketplace.schemas.field_schema import ResolvedSchema

CacheKey = Tuple[int, SchemaVariant]


class SchemaCache:
    """TTL cache for resolved schemas with explicit per-category invalidation."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[float, ResolvedSchema]] = {}
        self._generations: Dict[int, int] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def generation(self, category_id: int) -> int:
        return self._generations.get(category_id, 0)

    def get(self, category_id: int, variant: SchemaVariant) -> Optional[ResolvedSchema]:
        if not self.enabled:
            return None

        entry = self._entries.get((category_id, variant))
        if entry is None:
            record_schema_cache_event("miss")
            return None

        expires_at, schema = entry
        if self._clock() >= expires_at:
            self._entries.pop((category_id, variant), None)
            record_schema_cache_event("expired")
            return None

        record_schema_cache_event("hit")
        return schema

    def put(self, schema: ResolvedSchema, generation: int) -> bool:
        """Store ``schema`` unless its category was invalidated since ``generation``."""
        if not self.enabled:
            return False
        if self.generation(schema.category_id) != generation:
            logger.debug(f"Discarding stale schema load for category {schema.category_id}")
            return False

        self._entries[(schema.category_id, schema.variant)] = (self._clock() + self.ttl_seconds, schema)
        return True

    def invalidate(self, category_id: int) -> None:
        self._generations[category_id] = self.generation(category_id) + 1
        for key in [key for key in self._entries if key[0] == category_id]:
            del self._entries[key]
        record_schema_cache_event("invalidate")
        logger.info(f"Invalidated cached schemas for category {category_id}")

    def clear(self) -> None:
        self._entries.clear()
        self._generations.clear()

    def __len__(self) -> int:
        return len(self._entries)


schema_cache = SchemaCache(ttl_seconds=settings.SCHEMA_CACHE_TTL_SECONDS)
