"""
Run-of-day templates.

Every item is placed relative to an anchor (general call by default) so a
template reads the same whatever time the day starts. Templates are reference
data: tuples of NamedTuples that nothing mutates.
"""
from typing import Dict, List, NamedTuple, Optional, Tuple

TONES = ("default", "accent", "break", "wrap")
ANCHORS = ("general_call", "crew_call", "lunch")


class TemplateItem(NamedTuple):
    id: str
    label: str
    offset_minutes: int
    detail: str
    tone: str = "default"
    min_scene_count: Optional[int] = None
    anchor: str = "general_call"


class ScheduleTemplate(NamedTuple):
    id: str
    name: str
    default_general_call: str
    items: Tuple[TemplateItem, ...]


STANDARD_12 = ScheduleTemplate(
    id="standard-12",
    name="Standard 12-Hour",
    default_general_call="07:00",
    items=(
        TemplateItem("crew-call", "Crew Call", 0,
                     "Load-in, safety briefing, and department prep.", anchor="crew_call"),
        TemplateItem("blocking", "Blocking + Tech Setup", 0,
                     "Director, AD, camera, and key departments walk the first setup."),
        TemplateItem("talent-call", "Talent to Set", 30,
                     "Hair/makeup/wardrobe final checks and move to set.", tone="accent"),
        TemplateItem("first-shot", "First Shot", 60,
                     "Target first setup rolling on camera.", tone="accent"),
        TemplateItem("meal-break", "Meal Break", 0,
                     "Planned meal checkpoint for cast and crew.", tone="break", anchor="lunch"),
        TemplateItem("resume", "Back In / Resume Shooting", 30,
                     "Reset departments and continue principal photography.", anchor="lunch"),
        TemplateItem("company-move", "Company Move", 120,
                     "Travel and reset for secondary location or setup.",
                     min_scene_count=4, anchor="lunch"),
        TemplateItem("wrap", "Estimated Wrap", 12 * 60,
                     "Final shot, camera wrap, and production reports.", tone="wrap"),
    ),
)

COMMERCIAL_10 = ScheduleTemplate(
    id="commercial-10",
    name="Commercial 10-Hour",
    default_general_call="07:00",
    items=(
        TemplateItem("crew-call", "Crew Call", 0,
                     "Load-in and department prep.", anchor="crew_call"),
        TemplateItem("agency-client", "Agency / Client Check-In", 15,
                     "Review boards and shot list with agency and client."),
        TemplateItem("talent-call", "Talent to Set", 45,
                     "Final looks approved by client and moved to set.", tone="accent"),
        TemplateItem("first-shot", "First Shot", 60,
                     "Hero setup rolling on camera.", tone="accent"),
        TemplateItem("meal-break", "Meal Break", 0,
                     "Planned meal checkpoint for cast and crew.", tone="break", anchor="lunch"),
        TemplateItem("resume", "Back In / Resume Shooting", 30,
                     "Pick up product and insert shots.", anchor="lunch"),
        TemplateItem("company-move", "Company Move", 90,
                     "Travel and reset for secondary location or setup.",
                     min_scene_count=4, anchor="lunch"),
        TemplateItem("wrap", "Estimated Wrap", 10 * 60,
                     "Final shot, client sign-off, and production reports.", tone="wrap"),
    ),
)

NIGHT_12 = ScheduleTemplate(
    id="night-12",
    name="Night Shoot 12-Hour",
    default_general_call="18:30",
    items=(
        TemplateItem("crew-call", "Crew Call", 0,
                     "Load-in, lighting rig, and night safety briefing.", anchor="crew_call"),
        TemplateItem("blocking", "Blocking + Tech Setup", 0,
                     "Walk the first setup while there is still light to rig by."),
        TemplateItem("talent-call", "Talent to Set", 30,
                     "Hair/makeup/wardrobe final checks and move to set.", tone="accent"),
        TemplateItem("first-shot", "First Shot", 90,
                     "First setup rolling after full dark.", tone="accent"),
        TemplateItem("meal-break", "Meal Break", 0,
                     "Midnight meal for cast and crew.", tone="break", anchor="lunch"),
        TemplateItem("resume", "Back In / Resume Shooting", 30,
                     "Reset departments and continue night work.", anchor="lunch"),
        TemplateItem("company-move", "Company Move", 90,
                     "Travel and reset for secondary location or setup.",
                     min_scene_count=4, anchor="lunch"),
        TemplateItem("wrap", "Estimated Wrap", 12 * 60,
                     "Final shot before sunrise, camera wrap, and production reports.", tone="wrap"),
    ),
)

DEFAULT_TEMPLATE_ID = STANDARD_12.id

TEMPLATES: Dict[str, ScheduleTemplate] = {
    template.id: template for template in (STANDARD_12, COMMERCIAL_10, NIGHT_12)
}


def get_template(template_id: Optional[str] = None) -> ScheduleTemplate:
    """Look up a template, falling back to the standard 12-hour day."""
    if isinstance(template_id, str) and template_id in TEMPLATES:
        return TEMPLATES[template_id]
    return TEMPLATES[DEFAULT_TEMPLATE_ID]


def list_templates() -> List[Dict[str, str]]:
    return [
        {
            "id": template.id,
            "name": template.name,
            "default_general_call": template.default_general_call,
        }
        for template in TEMPLATES.values()
    ]
