import hashlib
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from ..base_config import DEFAULT_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_for_hash(value: Any) -> Any:
    """Recursively sort mapping keys and drop ``None`` entries.

    List order is kept as-is since it carries meaning (scene order, etc).
    """
    if isinstance(value, (list, tuple)):
        return [normalize_for_hash(item) for item in value]

    if isinstance(value, dict):
        entries = sorted(
            ((str(key), entry) for key, entry in value.items() if entry is not None),
            key=lambda pair: pair[0],
        )
        return {key: normalize_for_hash(entry) for key, entry in entries}

    return value


def build_cache_key(request: Any) -> str:
    """Hash a JSON-like request into a stable SHA-256 hex digest."""
    normalized = normalize_for_hash(request)
    payload = json.dumps(normalized, separators=(",", ":"), ensure_ascii=False, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class CacheStore:
    """Best-effort cache for AI responses keyed by (endpoint, cache key).

    Expired rows are only evicted when they are read. Every backend error is
    logged and turned into a miss or a no-op so callers never see it.
    """

    def __init__(self, backend, now: Optional[Callable[[], datetime]] = None,
                 default_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS):
        self.backend = backend
        self._now = now or _utcnow
        self.default_ttl_seconds = default_ttl_seconds

    def get(self, endpoint: str, cache_key: str) -> Optional[Any]:
        try:
            row = self.backend.fetch(endpoint, cache_key)
            if not row:
                return None

            if row["expires_at"] <= self._now():
                logger.info(f"Cache entry expired for {endpoint} ({cache_key[:12]})")
                self.backend.delete(endpoint, cache_key)
                return None

            return row["response"]
        except Exception as e:
            logger.warning(f"Error reading cache for {endpoint}: {str(e)}")
            return None

    def set(
        self,
        endpoint: str,
        cache_key: str,
        response: Any,
        ttl_seconds: Optional[int] = None,
        project_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        try:
            now = self._now()
            ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
            self.backend.upsert({
                "endpoint": endpoint,
                "cache_key": cache_key,
                "project_id": project_id,
                "user_id": user_id,
                "response": response,
                "expires_at": now + timedelta(seconds=ttl),
                "updated_at": now,
            })
        except Exception as e:
            logger.warning(f"Error writing cache for {endpoint}: {str(e)}")

    def invalidate_project(self, project_id: str, endpoint: Optional[str] = None) -> int:
        """Drop the entries scoped to a project, optionally for one endpoint only."""
        try:
            removed = self.backend.delete_where(project_id=project_id, endpoint=endpoint)
            if removed:
                logger.info(f"Invalidated {removed} cache entries for project {project_id}")
            return removed
        except Exception as e:
            logger.warning(f"Error invalidating cache for project {project_id}: {str(e)}")
            return 0

