import json
import logging
import os
import re
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class InMemoryCacheBackend:
    """Cache rows held in a dict keyed by (endpoint, cache_key)."""

    def __init__(self):
        self.rows: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def fetch(self, endpoint: str, cache_key: str) -> Optional[Dict[str, Any]]:
        row = self.rows.get((endpoint, cache_key))
        return dict(row) if row else None

    def upsert(self, row: Dict[str, Any]) -> None:
        self.rows[(row["endpoint"], row["cache_key"])] = dict(row)

    def delete(self, endpoint: str, cache_key: str) -> None:
        self.rows.pop((endpoint, cache_key), None)

    def delete_where(self, project_id: str, endpoint: Optional[str] = None) -> int:
        doomed = [
            key for key, row in self.rows.items()
            if row.get("project_id") == project_id and (endpoint is None or row["endpoint"] == endpoint)
        ]
        for key in doomed:
            del self.rows[key]
        return len(doomed)


class JsonFileCacheBackend:
    """Cache rows stored as one JSON file per entry.

    Layout: ``<cache_dir>/<endpoint slug>/<cache_key>.json``.
    """

    def __init__(self, cache_dir: str = "data/cache"):
        self.cache_dir = cache_dir
        os.makedirs(self.cache_dir, exist_ok=True)
        logger.info(f"Cache directory ensured at {self.cache_dir}")

    def _endpoint_dir(self, endpoint: str) -> str:
        slug = re.sub(r"[^A-Za-z0-9_-]+", "_", endpoint).strip("_") or "default"
        return os.path.join(self.cache_dir, slug)

    def _path(self, endpoint: str, cache_key: str) -> str:
        return os.path.join(self._endpoint_dir(endpoint), f"{cache_key}.json")

    def fetch(self, endpoint: str, cache_key: str) -> Optional[Dict[str, Any]]:
        path = self._path(endpoint, cache_key)
        if not os.path.exists(path):
            return None

        with open(path, "r") as f:
            row = json.load(f)

        row["expires_at"] = datetime.fromisoformat(row["expires_at"])
        row["updated_at"] = datetime.fromisoformat(row["updated_at"])
        return row

    def upsert(self, row: Dict[str, Any]) -> None:
        path = self._path(row["endpoint"], row["cache_key"])
        os.makedirs(os.path.dirname(path), exist_ok=True)

        data = dict(row)
        data["expires_at"] = row["expires_at"].isoformat()
        data["updated_at"] = row["updated_at"].isoformat()

        # Readers never see a half-written entry
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)

    def delete(self, endpoint: str, cache_key: str) -> None:
        path = self._path(endpoint, cache_key)
        if os.path.exists(path):
            os.remove(path)

    def delete_where(self, project_id: str, endpoint: Optional[str] = None) -> int:
        if endpoint is not None:
            directories = [self._endpoint_dir(endpoint)]
        else:
            directories = [
                os.path.join(self.cache_dir, name) for name in os.listdir(self.cache_dir)
            ]

        removed = 0
        for directory in directories:
            if not os.path.isdir(directory):
                continue
            for filename in os.listdir(directory):
                if not filename.endswith(".json"):
                    continue
                path = os.path.join(directory, filename)
                try:
                    with open(path, "r") as f:
                        row = json.load(f)
                except (OSError, ValueError) as e:
                    logger.warning(f"Skipping unreadable cache file {path}: {str(e)}")
                    continue
                if isinstance(row, dict) and row.get("project_id") == project_id:
                    os.remove(path)
                    removed += 1
        return removed
