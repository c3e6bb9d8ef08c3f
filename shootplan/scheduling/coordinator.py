import logging
import time
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..ai_cache import build_cache_key
from ..base_config import (
    AGENT_INSTRUCTIONS,
    SCHEDULE_BUILD_ENDPOINT,
    SCHEDULE_PLANNER_USER_TEMPLATE,
    build_prompt,
    get_cache_ttl,
)
from ..film_day import parse_time_to_minutes
from ..scene_order import sort_by_script_page_order
from .errors import (
    PartialPersistenceError,
    ScheduleBuildError,
    ScheduleNotFoundError,
    ScheduleValidationError,
    UpstreamError,
)
from .json_parser import extract_json
from .state_machine import BuildRun, BuildState

logger = logging.getLogger(__name__)

DEFAULT_MAX_SCENES_PER_DAY = 8
DEFAULT_GENERAL_CALL = "07:00"
DEFAULT_ESTIMATED_WRAP = "19:00"
PLANNER_MAX_TOKENS = 4000
PLANNER_TEMPERATURE = 0.3


class ScheduleBuildCoordinator:
    """Builds a project's shooting days from an AI day plan.

    Pipeline: validate the request, fetch scenes, prompt the planner (through
    the cache), parse and reconcile the plan against the real scene IDs, then
    persist days, call-sheet stubs and scene links.
    """

    def __init__(
        self,
        scene_store,
        day_store,
        planner,
        cache_store=None,
        processing_log=None,
        on_schedule_changed: Optional[Callable[[str], None]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.scene_store = scene_store
        self.day_store = day_store
        self.planner = planner
        self.cache_store = cache_store
        self.processing_log = processing_log
        self.on_schedule_changed = on_schedule_changed
        self._today = today or date.today
        logger.info("Initialized ScheduleBuildCoordinator")

    async def build_schedule(
        self,
        project_id: str,
        replace_existing: bool = False,
        max_scenes_per_day: int = DEFAULT_MAX_SCENES_PER_DAY,
        start_date: Optional[Union[date, str]] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build and persist a shooting schedule for a project.

        Returns:
            ``{"shooting_days": [...], "assumptions": [...], "stats": {...},
            "cache_hit": bool}``

        Raises:
            ScheduleValidationError: missing project id, bad options or no scenes
            ScheduleNotFoundError: unknown project
            UpstreamError: the planner failed or returned no usable day list
        """
        started = time.monotonic()
        run = BuildRun(project_id)

        try:
            result = await self._run(run, project_id, replace_existing, max_scenes_per_day,
                                     start_date, user_id)
        except Exception as e:
            failed_state = run.state
            run.fail()
            if isinstance(e, ScheduleBuildError) and e.status_code < 500:
                logger.warning(f"Schedule build rejected for project {project_id}: {str(e)}")
            else:
                logger.error(f"Schedule build failed for project {project_id} "
                             f"({failed_state.value}): {str(e)}", exc_info=True)
            self._record(project_id, user_id, started, success=False, error=e,
                         metadata={"replace_existing": replace_existing,
                                   "failed_state": failed_state.value})
            raise

        self._record(project_id, user_id, started, success=True, metadata={
            **result["stats"],
            "replace_existing": replace_existing,
            "cache_hit": result["cache_hit"],
        })
        self._notify_schedule_changed(project_id)
        return result

    async def _run(self, run: BuildRun, project_id: Any, replace_existing: bool,
                   max_scenes_per_day: Any, start_date: Any, user_id: Optional[str]) -> Dict[str, Any]:
        # Step 1: Validate the request
        schedule_start = self._validate_request(project_id, max_scenes_per_day, start_date)
        project = self.scene_store.get_project(project_id)
        if not project:
            raise ScheduleNotFoundError("Project not found or access denied")

        # Step 2: Fetch scenes
        run.advance(BuildState.FETCHING_SCENES)
        scenes = self._fetch_scenes(project_id)
        logger.info(f"Found {len(scenes)} scenes for project {project_id}")

        # Step 3: Prompt the planner, cache first
        run.advance(BuildState.PROMPTING_AI)
        scene_list = self._format_scene_list(scenes)
        cache_key = build_cache_key({
            "scope": project_id,
            "startDate": schedule_start.isoformat(),
            "maxScenesPerDay": max_scenes_per_day,
            "sceneList": scene_list,
        })
        plan = self._cached_plan(cache_key)
        cache_hit = plan is not None
        if cache_hit:
            logger.info(f"Using cached schedule plan for project {project_id}")
        else:
            raw_response = await self._call_planner(project, schedule_start, max_scenes_per_day, scene_list)

        # Step 4: Parse the plan
        run.advance(BuildState.PARSING)
        if not cache_hit:
            plan = self._parse_plan(raw_response)
            if self.cache_store is not None:
                self.cache_store.set(
                    SCHEDULE_BUILD_ENDPOINT,
                    cache_key,
                    plan,
                    ttl_seconds=get_cache_ttl(SCHEDULE_BUILD_ENDPOINT),
                    project_id=project_id,
                    user_id=user_id,
                )

        # Step 5: Reconcile against the real scene IDs
        run.advance(BuildState.RECONCILING)
        valid_scene_ids = {scene["id"] for scene in scenes}
        entries = [
            self._normalize_plan_entry(entry, index, valid_scene_ids)
            for index, entry in enumerate(entry for entry in plan["days"] if isinstance(entry, dict))
        ]

        # Step 6: Persist
        run.advance(BuildState.PERSISTING)
        created_days, scenes_assigned, days_failed = self._persist(
            project_id, entries, schedule_start, replace_existing
        )

        scheduled_ids = {scene_id for day in created_days for scene_id in day["scene_ids"]}
        scenes_unscheduled = sum(1 for scene in scenes if scene["id"] not in scheduled_ids)

        run.advance(BuildState.DONE)
        assumptions = plan.get("assumptions")
        return {
            "shooting_days": created_days,
            "assumptions": assumptions if isinstance(assumptions, list) else [],
            "stats": {
                "days_created": len(created_days),
                "scenes_assigned": scenes_assigned,
                "scenes_unscheduled": scenes_unscheduled,
                "days_failed": days_failed,
            },
            "cache_hit": cache_hit,
        }

    def _validate_request(self, project_id: Any, max_scenes_per_day: Any, start_date: Any) -> date:
        if not isinstance(project_id, str) or not project_id.strip():
            raise ScheduleValidationError("projectId is required")

        if isinstance(max_scenes_per_day, bool) or not isinstance(max_scenes_per_day, int) \
                or max_scenes_per_day < 1:
            raise ScheduleValidationError("maxScenesPerDay must be a positive integer")

        if start_date is None or start_date == "":
            return self._today() + timedelta(days=1)
        if isinstance(start_date, datetime):
            return start_date.date()
        if isinstance(start_date, date):
            return start_date
        try:
            return datetime.strptime(str(start_date), "%Y-%m-%d").date()
        except ValueError:
            raise ScheduleValidationError("Invalid start date format. Use YYYY-MM-DD")

    def _fetch_scenes(self, project_id: str) -> List[Dict[str, Any]]:
        try:
            scenes = self.scene_store.list_scenes(project_id)
        except Exception as e:
            raise ScheduleBuildError(f"Failed to fetch scenes: {str(e)}")

        if not scenes:
            raise ScheduleValidationError("No scenes found for this project")
        return scenes

    def _format_scene_list(self, scenes: List[Dict[str, Any]]) -> str:
        """One manifest line per scene, in script order."""
        ordered = sort_by_script_page_order(scenes, lambda scene: scene.get("script_page_start"))
        lines = []
        for scene in ordered:
            scene_number = scene.get("scene_number") or ""
            location = scene.get("location_name") or "Unknown"
            synopsis = scene.get("synopsis") or "No synopsis"
            lines.append(
                f"- ID: {scene['id']} | Scene {scene_number} | {scene.get('int_ext') or ''} {location} - "
                f"{scene.get('day_night') or ''} | {scene.get('page_count') or 0} pages | {synopsis}"
            )
        return "\n".join(lines)

    def _cached_plan(self, cache_key: str) -> Optional[Dict[str, Any]]:
        if self.cache_store is None:
            return None
        cached = self.cache_store.get(SCHEDULE_BUILD_ENDPOINT, cache_key)
        if isinstance(cached, dict) and isinstance(cached.get("days"), list):
            return cached
        return None

    async def _call_planner(self, project: Dict[str, Any], schedule_start: date,
                            max_scenes_per_day: int, scene_list: str) -> str:
        user_prompt = build_prompt(SCHEDULE_PLANNER_USER_TEMPLATE, {
            "projectName": project.get("name") or "Untitled",
            "startDate": schedule_start.isoformat(),
            "maxScenesPerDay": str(max_scenes_per_day),
            "sceneList": scene_list,
        })
        try:
            return await self.planner.plan(
                system_prompt=AGENT_INSTRUCTIONS["schedule_planner"],
                user_prompt=user_prompt,
                max_tokens=PLANNER_MAX_TOKENS,
                temperature=PLANNER_TEMPERATURE,
            )
        except UpstreamError:
            raise
        except Exception as e:
            raise UpstreamError(f"Schedule planner failed: {str(e)}")

    def _parse_plan(self, raw_response: str) -> Dict[str, Any]:
        parsed = extract_json(raw_response)
        if not parsed["success"]:
            raise UpstreamError(f"Invalid AI response: {parsed['error']}")

        plan = parsed["data"]
        if not isinstance(plan, dict) or not isinstance(plan.get("days"), list):
            raise UpstreamError("Invalid AI response: missing days array")
        return plan

    def _normalize_plan_entry(self, entry: Dict[str, Any], index: int,
                              valid_scene_ids: set) -> Dict[str, Any]:
        date_offset = entry.get("dateOffset")
        if isinstance(date_offset, float) and date_offset.is_integer():
            date_offset = int(date_offset)
        if isinstance(date_offset, bool) or not isinstance(date_offset, int):
            logger.warning(f"Day plan {index + 1} has no usable dateOffset, using {index}")
            date_offset = index

        general_call = entry.get("generalCall")
        if parse_time_to_minutes(general_call) is None:
            general_call = DEFAULT_GENERAL_CALL
        estimated_wrap = entry.get("estimatedWrap")
        if parse_time_to_minutes(estimated_wrap) is None:
            estimated_wrap = DEFAULT_ESTIMATED_WRAP

        raw_ids = entry.get("sceneIds")
        if not isinstance(raw_ids, list):
            raw_ids = []
        scene_ids = [scene_id for scene_id in raw_ids if isinstance(scene_id, str) and scene_id in valid_scene_ids]
        dropped = len(raw_ids) - len(scene_ids)
        if dropped:
            logger.warning(f"Dropped {dropped} unknown scene IDs from day plan {index + 1}")

        notes = entry.get("notes")
        return {
            "index": index,
            "date_offset": date_offset,
            "general_call": general_call,
            "estimated_wrap": estimated_wrap,
            "scene_ids": scene_ids,
            "notes": notes if isinstance(notes, str) and notes else None,
        }

    def _persist(self, project_id: str, entries: List[Dict[str, Any]], schedule_start: date,
                 replace_existing: bool) -> Tuple[List[Dict[str, Any]], int, int]:
        created_days = []
        scenes_assigned = 0
        days_failed = 0

        try:
            with self.day_store.batch():
                if replace_existing:
                    self._delete_existing_days(project_id)

                # Sequential: day numbers follow plan order
                for entry in entries:
                    try:
                        day, assigned = self._create_day(project_id, entry, schedule_start)
                    except PartialPersistenceError as e:
                        logger.error(f"Skipping shooting day: {e.message}")
                        days_failed += 1
                        continue
                    created_days.append(day)
                    scenes_assigned += assigned
        except ScheduleBuildError:
            raise
        except Exception as e:
            raise ScheduleBuildError(f"Failed to persist shooting days: {str(e)}")

        return created_days, scenes_assigned, days_failed

    def _delete_existing_days(self, project_id: str) -> None:
        day_ids = self.day_store.list_day_ids(project_id)
        if not day_ids:
            return

        logger.info(f"Replacing {len(day_ids)} existing shooting days for project {project_id}")
        self.day_store.delete_scene_links(day_ids)
        self.day_store.delete_cast_links(day_ids)
        self.day_store.delete_call_sheets(day_ids)
        self.day_store.delete_days(project_id)

    def _create_day(self, project_id: str, entry: Dict[str, Any],
                    schedule_start: date) -> Tuple[Dict[str, Any], int]:
        day_number = entry["index"] + 1
        scene_ids = entry["scene_ids"]

        try:
            # dateOffset comes from the model and may overflow
            day_date = schedule_start + timedelta(days=entry["date_offset"])
            day = self.day_store.create_day({
                "project_id": project_id,
                "date": day_date.isoformat(),
                "day_number": day_number,
                "unit": "MAIN",
                "status": "TENTATIVE",
                "general_call": entry["general_call"],
                "estimated_wrap": entry["estimated_wrap"],
                "notes": entry["notes"],
                "is_shooting_day": True,
            })
        except Exception as e:
            raise PartialPersistenceError(
                f"Failed to create shooting day {day_number}: {str(e)}", day_index=entry["index"]
            )

        try:
            self.day_store.create_call_sheet(day["id"])
        except Exception as e:
            logger.error(f"Error creating call sheet for day {day_number}: {str(e)}")

        linked_ids = []
        if scene_ids:
            try:
                self.day_store.create_scene_links([
                    {"shooting_day_id": day["id"], "scene_id": scene_id, "sort_order": position}
                    for position, scene_id in enumerate(scene_ids)
                ])
                linked_ids = list(scene_ids)
            except Exception as e:
                logger.error(f"Error inserting scene links for day {day_number}, "
                             f"leaving its scenes unscheduled: {str(e)}")

        if linked_ids:
            try:
                self.scene_store.mark_scenes_scheduled(linked_ids)
            except Exception as e:
                logger.error(f"Error marking scenes scheduled for day {day_number}: {str(e)}")

        return {
            "id": day["id"],
            "project_id": project_id,
            "date": day["date"],
            "day_number": day["day_number"],
            "unit": day["unit"],
            "status": day["status"],
            "general_call": day["general_call"],
            "estimated_wrap": day["estimated_wrap"],
            "notes": day["notes"],
            "scene_ids": linked_ids,
        }, len(linked_ids)

    def _record(self, project_id: Any, user_id: Optional[str], started: float, success: bool,
                error: Optional[Exception] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
        if self.processing_log is None:
            return
        try:
            self.processing_log.record({
                "project_id": project_id if isinstance(project_id, str) and project_id else None,
                "user_id": user_id,
                "endpoint": SCHEDULE_BUILD_ENDPOINT,
                "processing_time_ms": int((time.monotonic() - started) * 1000),
                "success": success,
                "error_message": str(error) if error else None,
                "metadata": metadata or {},
            })
        except Exception as e:
            logger.warning(f"Failed to write processing log: {str(e)}")

    def _notify_schedule_changed(self, project_id: str) -> None:
        if self.on_schedule_changed is None:
            return
        try:
            self.on_schedule_changed(project_id)
        except Exception as e:
            logger.warning(f"Failed to invalidate schedule views for project {project_id}: {str(e)}")
