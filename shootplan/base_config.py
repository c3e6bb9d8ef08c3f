from typing import Dict, Any
import os
from dotenv import load_dotenv

load_dotenv()

# Base configuration for the planner agent
BASE_MODEL_CONFIG = {
    "provider": os.getenv("SHOOTPLAN_LLM_PROVIDER", "openai"),
    "model": os.getenv("SHOOTPLAN_MODEL", "gpt-4.1-mini"),
    "gemini_model": os.getenv("SHOOTPLAN_GEMINI_MODEL", "gemini-2.5-pro"),
    "temperature": 0.3,
    "max_tokens": 4000,
    "timeout_seconds": float(os.getenv("SHOOTPLAN_LLM_TIMEOUT", "120")),
    "max_attempts": int(os.getenv("SHOOTPLAN_LLM_MAX_ATTEMPTS", "3")),
}

DATA_DIR = os.getenv("SHOOTPLAN_DATA_DIR", "data")

SCHEDULE_BUILD_ENDPOINT = "/api/ai/schedule/build"
RUN_OF_SHOW_ENDPOINT = "/api/schedule/run-of-show"

DEFAULT_CACHE_TTL_SECONDS = 60 * 60 * 24 * 7

# Per-endpoint TTLs
CACHE_TTL_SECONDS = {
    SCHEDULE_BUILD_ENDPOINT: 60 * 60 * 24 * 3,
    RUN_OF_SHOW_ENDPOINT: 60 * 60 * 24 * 30,
}


def get_model_config() -> Dict[str, Any]:
    """Get model configuration."""
    config = BASE_MODEL_CONFIG.copy()
    # Fall back to Gemini when only a Google key is configured
    if config["provider"] == "openai" and not os.getenv("OPENAI_API_KEY") and os.getenv("GOOGLE_API_KEY"):
        config["provider"] = "gemini"
    return config


def get_cache_ttl(endpoint: str) -> int:
    return CACHE_TTL_SECONDS.get(endpoint, DEFAULT_CACHE_TTL_SECONDS)


def build_prompt(template: str, variables: Dict[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders in a prompt template."""
    result = template
    for key, value in variables.items():
        result = result.replace("{{" + key + "}}", value or "")
    return result


# Common agent instructions
AGENT_INSTRUCTIONS = {
    "schedule_planner": """You are a Schedule Planner Agent for film production.
    Your tasks:
    1. Group scenes into shooting days, keeping scenes at the same location together
    2. Respect the maximum number of scenes per day
    3. Separate DAY and NIGHT work so crews get proper turnaround
    4. Give every day a general call and an estimated wrap in HH:MM 24-hour time

    Respond with ONLY valid JSON in exactly this format:
    {
      "days": [
        {
          "dateOffset": 0,
          "generalCall": "07:00",
          "estimatedWrap": "19:00",
          "sceneIds": ["scene id"],
          "notes": "short note for the AD team"
        }
      ],
      "unscheduledSceneIds": ["scene id"],
      "assumptions": ["assumption you made"]
    }
    dateOffset is the number of days after the start date. Use only the scene IDs
    you are given. Do not include any other text.""",
}

SCHEDULE_PLANNER_USER_TEMPLATE = """Build a shooting schedule for the project "{{projectName}}".

Start date: {{startDate}}
Maximum scenes per day: {{maxScenesPerDay}}

Scenes (in script order):
{{sceneList}}

Return ONLY the JSON data structure."""
