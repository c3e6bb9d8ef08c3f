"""
Daily film schedule engine.

Turns the partial view of a shooting day (general call, crew call, lunch,
wrap, template, custom items) into an ordered run-of-day. Everything here is
pure: the same input always yields the same output, and bad input falls back
to defaults instead of raising.
"""
import re
from typing import Any, Dict, List, Optional

from .templates import ANCHORS, TONES, get_template

MINUTES_PER_DAY = 24 * 60
MEAL_WINDOW_MINUTES = 6 * 60
CREW_CALL_LEAD_MINUTES = 30
DEFAULT_GENERAL_CALL = "07:00"

_TIME_PATTERN = re.compile(r"^([0-9]{2}):([0-9]{2})$")


def normalize_minutes(minutes: int) -> int:
    return minutes % MINUTES_PER_DAY


def parse_time_to_minutes(value: Any) -> Optional[int]:
    """Parse a strict ``HH:MM`` 24-hour string into minutes after midnight."""
    if not isinstance(value, str):
        return None
    match = _TIME_PATTERN.match(value)
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_minutes_to_time(total_minutes: int) -> str:
    normalized = normalize_minutes(total_minutes)
    return f"{normalized // 60:02d}:{normalized % 60:02d}"


def derive_lunch_time(crew_call: Any = None, general_call: Any = None,
                      default_general_call: str = DEFAULT_GENERAL_CALL) -> str:
    """Place the meal six hours after crew call (or general call)."""
    anchor = parse_time_to_minutes(crew_call)
    if anchor is None:
        anchor = parse_time_to_minutes(general_call)
    if anchor is None:
        anchor = parse_time_to_minutes(default_general_call)
    return format_minutes_to_time(anchor + MEAL_WINDOW_MINUTES)


def _first_time(day: Dict[str, Any], *keys: str) -> Optional[int]:
    for key in keys:
        minutes = parse_time_to_minutes(day.get(key))
        if minutes is not None:
            return minutes
    return None


def _resolve_anchors(day: Dict[str, Any], default_general_call: str) -> Dict[str, Optional[int]]:
    general_call = _first_time(day, "general_call")
    if general_call is None:
        general_call = parse_time_to_minutes(default_general_call)

    crew_call = _first_time(day, "crew_call")
    if crew_call is None:
        crew_call = normalize_minutes(general_call - CREW_CALL_LEAD_MINUTES)

    lunch = _first_time(day, "lunch_time")
    if lunch is None:
        lunch = normalize_minutes(crew_call + MEAL_WINDOW_MINUTES)

    return {
        "general_call": general_call,
        "crew_call": crew_call,
        "lunch": lunch,
        "wrap": _first_time(day, "wrap_time", "estimated_wrap"),
    }


def _custom_items(raw_items: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw_items, (list, tuple)):
        return []

    accepted = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            continue
        minutes = parse_time_to_minutes(raw.get("time"))
        label = raw.get("label")
        detail = raw.get("detail")
        if minutes is None:
            continue
        if not isinstance(label, str) or not label.strip():
            continue
        if not isinstance(detail, str) or not detail.strip():
            continue

        tone = raw.get("tone") if raw.get("tone") in TONES else "default"
        item_id = raw.get("id") if isinstance(raw.get("id"), str) and raw.get("id") else f"custom-{index + 1}"
        accepted.append({
            "minutes": minutes,
            "item": {
                "id": item_id,
                "label": label.strip(),
                "time": format_minutes_to_time(minutes),
                "detail": detail.strip(),
                "tone": tone,
            },
        })
    return accepted


def build_daily_film_schedule(day: Optional[Dict[str, Any]] = None, scene_count: Any = 0) -> Dict[str, Any]:
    """Build the run-of-day for one shooting day.

    Args:
        day: partial shooting day (``general_call``, ``crew_call``,
            ``lunch_time``, ``wrap_time``/``estimated_wrap``, ``template_id``,
            ``custom_items``)
        scene_count: number of scenes on the day; items with a higher
            ``min_scene_count`` are left out

    Returns:
        ``{"items": [...], "meal_within_six_hours": bool}``
    """
    if not isinstance(day, dict):
        day = {}
    if isinstance(scene_count, bool) or not isinstance(scene_count, int):
        scene_count = 0

    template = get_template(day.get("template_id"))
    anchors = _resolve_anchors(day, template.default_general_call)

    entries = []
    for template_item in template.items:
        if template_item.min_scene_count is not None and template_item.min_scene_count > scene_count:
            continue

        anchor = template_item.anchor if template_item.anchor in ANCHORS else "general_call"
        minutes = normalize_minutes(anchors[anchor] + template_item.offset_minutes)
        if template_item.tone == "wrap" and anchors["wrap"] is not None:
            minutes = anchors["wrap"]

        entries.append({
            "minutes": minutes,
            "item": {
                "id": template_item.id,
                "label": template_item.label,
                "time": format_minutes_to_time(minutes),
                "detail": template_item.detail,
                "tone": template_item.tone,
            },
        })

    entries.extend(_custom_items(day.get("custom_items")))

    # sorted() is stable, so equal times keep template-then-custom order
    entries = sorted(entries, key=lambda entry: entry["minutes"])

    meal_gap = normalize_minutes(anchors["lunch"] - anchors["crew_call"])
    return {
        "items": [entry["item"] for entry in entries],
        "meal_within_six_hours": meal_gap <= MEAL_WINDOW_MINUTES,
    }
