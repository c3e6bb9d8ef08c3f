"""
Scene ordering helpers.

Scene lists extracted by the AI come back loosely ordered, with page numbers
that restart inside each chunk and with the same scene reported twice across
chunk boundaries. These helpers clean that up before the scenes are trusted.
"""
import math
import re
from typing import Any, Callable, List, Optional, TypeVar

T = TypeVar("T")

# Chunk-local page numbers above this are assumed to already be absolute
MAX_CHUNK_LOCAL_PAGE = 15

_SCENE_PREFIX = re.compile(r"^SCENE\s+", re.IGNORECASE)


def _finite_positive(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def normalize_scene_number(raw_scene_number: Any, fallback_index: int) -> str:
    """Strip whitespace and a leading ``SCENE`` word; fall back to the index."""
    cleaned = _SCENE_PREFIX.sub("", str(raw_scene_number or "").strip())
    if cleaned:
        return cleaned
    return str(fallback_index)


def adjust_chunk_local_page(raw_page: Any, chunk_page_start: float) -> Optional[float]:
    """Map a page number that restarted at 1 inside a chunk back to the script page."""
    page = _finite_positive(raw_page)
    if page is None:
        return None

    if chunk_page_start <= 1:
        return page

    if page < chunk_page_start and page <= MAX_CHUNK_LOCAL_PAGE:
        return chunk_page_start - 1 + page

    return page


def sort_by_script_page_order(items: List[T], page_of: Callable[[T], Any]) -> List[T]:
    """Stable sort by starting script page.

    Items without a usable page go last and keep their original order.
    """
    decorated = [(_finite_positive(page_of(item)), index, item) for index, item in enumerate(items)]
    decorated.sort(key=lambda entry: (entry[0] is None, entry[0] or 0.0, entry[1]))
    return [item for _, _, item in decorated]


def _scene_number_key(value: Any) -> str:
    return _SCENE_PREFIX.sub("", str(value or "").strip()).upper()


def _set_name_key(value: Any) -> str:
    return str(value or "").strip().upper()


def dedupe_by_scene_number_and_set(
    items: List[T],
    scene_number_of: Callable[[T], Any],
    set_name_of: Callable[[T], Any],
) -> List[T]:
    """Drop repeated (scene number, set) pairs, keeping the first occurrence.

    Scenes without a scene number are always kept: two unnumbered scenes on
    the same set may well be different scenes.
    """
    seen = set()
    deduped = []

    for item in items:
        scene_number = _scene_number_key(scene_number_of(item))
        if not scene_number:
            deduped.append(item)
            continue

        key = f"{scene_number}::{_set_name_key(set_name_of(item))}"
        if key in seen:
            continue

        seen.add(key)
        deduped.append(item)

    return deduped


def reconcile_extracted_scenes(chunks: List[dict]) -> List[dict]:
    """Merge per-chunk AI scene extractions into one clean scene list.

    Each chunk is ``{"page_start": int, "scenes": [...]}`` where a scene has
    ``scene_number``, ``set_name``, ``script_page_start`` and optionally
    ``script_page_end``. Pages are corrected for chunk-local numbering, the
    scenes are put in script page order and repeated scenes are dropped.
    """
    merged = []
    for chunk in chunks:
        chunk_page_start = _finite_positive(chunk.get("page_start")) or 1
        for raw_scene in chunk.get("scenes") or []:
            if not isinstance(raw_scene, dict):
                continue
            scene = dict(raw_scene)
            scene["scene_number"] = normalize_scene_number(scene.get("scene_number"), len(merged) + 1)
            scene["set_name"] = str(scene.get("set_name") or "").strip()

            page_start = adjust_chunk_local_page(scene.get("script_page_start"), chunk_page_start)
            page_end = adjust_chunk_local_page(scene.get("script_page_end"), chunk_page_start)
            scene["script_page_start"] = page_start or chunk_page_start
            if page_end and page_start:
                page_end = max(page_start, page_end)
            scene["script_page_end"] = page_end or scene["script_page_start"]

            merged.append(scene)

    ordered = sort_by_script_page_order(merged, lambda scene: scene.get("script_page_start"))
    return dedupe_by_scene_number_and_set(
        ordered,
        lambda scene: scene.get("scene_number"),
        lambda scene: scene.get("set_name"),
    )
