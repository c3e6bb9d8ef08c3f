from typing import Any, Optional
import logging
import os

import uvicorn
from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from shootplan.ai_cache import CacheStore, JsonFileCacheBackend, build_cache_key
from shootplan.base_config import DATA_DIR, RUN_OF_SHOW_ENDPOINT, get_cache_ttl
from shootplan.film_day import build_daily_film_schedule, list_templates
from shootplan.scheduling import ScheduleBuildCoordinator, ScheduleBuildError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class BuildScheduleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: Optional[str] = Field(default=None, alias="projectId")
    replace_existing: bool = Field(default=False, alias="replaceExisting")
    max_scenes_per_day: int = Field(default=8, alias="maxScenesPerDay")
    start_date: Optional[str] = Field(default=None, alias="startDate")


class DayScheduleInput(BaseModel):
    # Loosely typed: the schedule engine falls back to defaults on bad values
    model_config = ConfigDict(populate_by_name=True)

    general_call: Any = Field(default=None, alias="generalCall")
    crew_call: Any = Field(default=None, alias="crewCall")
    lunch_time: Any = Field(default=None, alias="lunchTime")
    wrap_time: Any = Field(default=None, alias="wrapTime")
    estimated_wrap: Any = Field(default=None, alias="estimatedWrap")
    template_id: Any = Field(default=None, alias="templateId")
    custom_items: Any = Field(default=None, alias="customItems")


class RunOfShowRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: Optional[str] = Field(default=None, alias="projectId")
    day: DayScheduleInput = Field(default_factory=DayScheduleInput)
    scene_count: int = Field(default=0, alias="sceneCount")


def _to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {_to_camel(key): _camelize(entry) for key, entry in value.items()}
    if isinstance(value, list):
        return [_camelize(entry) for entry in value]
    return value


def _default_components():
    """Wire the JSON-file stores and the LLM planner."""
    from shootplan.scheduling.agents import SchedulePlannerAgent
    from shootplan.scheduling.stores import JsonFileProductionStore

    store = JsonFileProductionStore(DATA_DIR)
    cache_store = CacheStore(JsonFileCacheBackend(os.path.join(DATA_DIR, "cache")))
    coordinator = ScheduleBuildCoordinator(
        scene_store=store,
        day_store=store,
        planner=SchedulePlannerAgent(),
        cache_store=cache_store,
        processing_log=store,
        on_schedule_changed=lambda project_id: cache_store.invalidate_project(project_id, RUN_OF_SHOW_ENDPOINT),
    )
    return coordinator, cache_store


def create_app(coordinator: Optional[ScheduleBuildCoordinator] = None,
               cache_store: Optional[CacheStore] = None) -> FastAPI:
    if coordinator is None:
        coordinator, cache_store = _default_components()

    app = FastAPI(title="Shootplan", description="Production scheduling assistant")

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"error": f"Invalid request body: {message}"})

    @app.post("/api/ai/schedule/build")
    async def build_schedule(body: BuildScheduleRequest, x_user_id: Optional[str] = Header(default=None)):
        try:
            result = await coordinator.build_schedule(
                project_id=body.project_id,
                replace_existing=body.replace_existing,
                max_scenes_per_day=body.max_scenes_per_day,
                start_date=body.start_date,
                user_id=x_user_id,
            )
        except ScheduleBuildError as e:
            return JSONResponse(status_code=e.status_code, content={"error": e.message})
        except Exception as e:
            logger.error(f"Schedule build error: {str(e)}", exc_info=True)
            return JSONResponse(status_code=500, content={"error": str(e) or "Failed to build schedule"})

        return {"data": _camelize(result)}

    @app.post(RUN_OF_SHOW_ENDPOINT)
    async def run_of_show(body: RunOfShowRequest):
        day = body.day.model_dump()
        cache_key = build_cache_key({"projectId": body.project_id, "day": day, "sceneCount": body.scene_count})
        schedule = cache_store.get(RUN_OF_SHOW_ENDPOINT, cache_key) if cache_store else None
        if schedule is None:
            schedule = build_daily_film_schedule(day, body.scene_count)
            if cache_store:
                cache_store.set(RUN_OF_SHOW_ENDPOINT, cache_key, schedule,
                                ttl_seconds=get_cache_ttl(RUN_OF_SHOW_ENDPOINT),
                                project_id=body.project_id)
        return {"data": _camelize(schedule)}

    @app.get("/api/schedule/templates")
    async def templates():
        return {"data": _camelize(list_templates())}

    return app


if __name__ == "__main__":
    uvicorn.run(create_app(), host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
