"""
Persistence collaborators for the schedule build.

The coordinator only talks to the narrow protocols below. Two implementations
are provided: an in-memory store (tests, local runs) and a JSON-file store that
keeps every table in one document under the data directory.
"""
import copy
import json
import logging
import os
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Protocol

logger = logging.getLogger(__name__)

SCENE_STATUS_SCHEDULED = "SCHEDULED"


class SceneStore(Protocol):
    def get_project(self, project_id: str) -> Optional[Dict[str, Any]]: ...

    def list_scenes(self, project_id: str) -> List[Dict[str, Any]]: ...

    def mark_scenes_scheduled(self, scene_ids: List[str]) -> None: ...


class DayStore(Protocol):
    def list_day_ids(self, project_id: str) -> List[str]: ...

    def delete_scene_links(self, day_ids: List[str]) -> None: ...

    def delete_cast_links(self, day_ids: List[str]) -> None: ...

    def delete_call_sheets(self, day_ids: List[str]) -> None: ...

    def delete_days(self, project_id: str) -> None: ...

    def create_day(self, day: Dict[str, Any]) -> Dict[str, Any]: ...

    def create_call_sheet(self, shooting_day_id: str) -> Dict[str, Any]: ...

    def create_scene_links(self, links: List[Dict[str, Any]]) -> None: ...

    def batch(self): ...


class ProcessingLog(Protocol):
    def record(self, entry: Dict[str, Any]) -> None: ...


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryProductionStore:
    """Projects, scenes, shooting days and their link tables held in memory."""

    TABLES = (
        "projects",
        "scenes",
        "shooting_days",
        "shooting_day_scenes",
        "shooting_day_cast",
        "call_sheets",
        "processing_logs",
    )

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        tables = tables or {}
        self.tables = {name: list(tables.get(name, [])) for name in self.TABLES}
        self._batch_depth = 0

    # Seeding helpers

    def add_project(self, name: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        project = {"id": project_id or _new_id(), "name": name}
        self.tables["projects"].append(project)
        self._commit()
        return dict(project)

    def add_scene(self, project_id: str, scene_number: str, **fields) -> Dict[str, Any]:
        scene = {
            "id": fields.pop("id", None) or _new_id(),
            "project_id": project_id,
            "scene_number": scene_number,
            "synopsis": None,
            "int_ext": "INT",
            "day_night": "DAY",
            "page_count": 1,
            "sort_order": len(self.tables["scenes"]),
            "location_name": None,
            "status": "NOT_SCHEDULED",
        }
        scene.update(fields)
        self.tables["scenes"].append(scene)
        self._commit()
        return dict(scene)

    def add_cast_link(self, shooting_day_id: str, cast_member_id: str) -> None:
        self.tables["shooting_day_cast"].append({
            "id": _new_id(),
            "shooting_day_id": shooting_day_id,
            "cast_member_id": cast_member_id,
        })
        self._commit()

    # SceneStore

    def get_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        for project in self.tables["projects"]:
            if project["id"] == project_id:
                return dict(project)
        return None

    def list_scenes(self, project_id: str) -> List[Dict[str, Any]]:
        scenes = [dict(s) for s in self.tables["scenes"] if s["project_id"] == project_id]
        return sorted(scenes, key=lambda scene: scene.get("sort_order") or 0)

    def mark_scenes_scheduled(self, scene_ids: List[str]) -> None:
        wanted = set(scene_ids)
        for scene in self.tables["scenes"]:
            if scene["id"] in wanted:
                scene["status"] = SCENE_STATUS_SCHEDULED
        self._commit()

    # DayStore

    def list_day_ids(self, project_id: str) -> List[str]:
        return [day["id"] for day in self.tables["shooting_days"] if day["project_id"] == project_id]

    def _delete_by_day(self, table: str, day_ids: List[str]) -> None:
        doomed = set(day_ids)
        self.tables[table] = [row for row in self.tables[table] if row["shooting_day_id"] not in doomed]
        self._commit()

    def delete_scene_links(self, day_ids: List[str]) -> None:
        self._delete_by_day("shooting_day_scenes", day_ids)

    def delete_cast_links(self, day_ids: List[str]) -> None:
        self._delete_by_day("shooting_day_cast", day_ids)

    def delete_call_sheets(self, day_ids: List[str]) -> None:
        self._delete_by_day("call_sheets", day_ids)

    def delete_days(self, project_id: str) -> None:
        self.tables["shooting_days"] = [
            day for day in self.tables["shooting_days"] if day["project_id"] != project_id
        ]
        self._commit()

    def create_day(self, day: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(day)
        row["id"] = _new_id()
        self.tables["shooting_days"].append(row)
        self._commit()
        return dict(row)

    def create_call_sheet(self, shooting_day_id: str) -> Dict[str, Any]:
        row = {"id": _new_id(), "shooting_day_id": shooting_day_id}
        self.tables["call_sheets"].append(row)
        self._commit()
        return dict(row)

    def create_scene_links(self, links: List[Dict[str, Any]]) -> None:
        for link in links:
            row = dict(link)
            row["id"] = _new_id()
            self.tables["shooting_day_scenes"].append(row)
        self._commit()

    def list_days(self, project_id: str) -> List[Dict[str, Any]]:
        days = [dict(day) for day in self.tables["shooting_days"] if day["project_id"] == project_id]
        return sorted(days, key=lambda day: (day["date"], day["day_number"]))

    def list_scene_links(self, shooting_day_id: str) -> List[Dict[str, Any]]:
        links = [dict(link) for link in self.tables["shooting_day_scenes"]
                 if link["shooting_day_id"] == shooting_day_id]
        return sorted(links, key=lambda link: link["sort_order"])

    @contextmanager
    def batch(self) -> Iterator["InMemoryProductionStore"]:
        """Group writes; on an exception every table is restored."""
        snapshot = copy.deepcopy(self.tables)
        self._batch_depth += 1
        try:
            yield self
        except BaseException:
            self.tables = snapshot
            raise
        finally:
            self._batch_depth -= 1
        self._commit()

    # ProcessingLog

    def record(self, entry: Dict[str, Any]) -> None:
        row = dict(entry)
        row["id"] = _new_id()
        row.setdefault("created_at", datetime.now().isoformat())
        self.tables["processing_logs"].append(row)
        self._commit()

    def _commit(self) -> None:
        """Persist pending writes. Nothing to do in memory."""


class JsonFileProductionStore(InMemoryProductionStore):
    """In-memory tables mirrored to ``<data_dir>/production/store.json``."""

    def __init__(self, data_dir: str = "data"):
        self.filename = os.path.join(data_dir, "production", "store.json")
        os.makedirs(os.path.dirname(self.filename), exist_ok=True)

        tables = {}
        if os.path.exists(self.filename):
            with open(self.filename, "r") as f:
                tables = json.load(f)
            logger.info(f"Loaded production store from {self.filename}")
        super().__init__(tables)

    def _commit(self) -> None:
        if self._batch_depth:
            return
        try:
            tmp_path = f"{self.filename}.tmp"
            with open(tmp_path, "w") as f:
                json.dump(self.tables, f, indent=2)
            os.replace(tmp_path, self.filename)
        except IOError as e:
            logger.error(f"Failed to write production store {self.filename}: {str(e)}", exc_info=True)
            raise IOError(f"Failed to write production store: {str(e)}")
