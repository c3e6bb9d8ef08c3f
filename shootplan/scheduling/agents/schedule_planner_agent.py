import asyncio
import logging
import os
from typing import Any, Dict, Optional

import google.generativeai as genai
import openai
from agents import Agent, ModelSettings, Runner
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ...base_config import get_model_config
from ..errors import UpstreamError

logger = logging.getLogger(__name__)

# Provider failures worth another attempt
TRANSIENT_ERRORS = (
    asyncio.TimeoutError,
    ConnectionError,
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class SchedulePlannerAgent:
    """LLM collaborator that turns a scene manifest into a day plan.

    Returns the raw model text; validating it is the coordinator's job.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 retry_wait_min: float = 1, retry_wait_max: float = 10):
        self.config = config or get_model_config()
        self.provider = self.config.get("provider", "openai")
        self.timeout_seconds = self.config.get("timeout_seconds", 120)
        self.max_attempts = max(1, int(self.config.get("max_attempts", 3)))
        self.retry_wait_min = retry_wait_min
        self.retry_wait_max = retry_wait_max

        if self.provider == "gemini":
            genai.configure(api_key=os.getenv("GOOGLE_API_KEY"))
        logger.info(f"SchedulePlannerAgent initialized ({self.provider})")

    async def plan(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4000,
        temperature: float = 0.3,
    ) -> str:
        """Ask the model for a day plan.

        Each attempt gets its own deadline; timeouts, connection drops, rate
        limits and provider 5xx errors are retried with exponential backoff.

        Raises:
            UpstreamError: if the provider keeps failing or returns nothing
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=self.retry_wait_min, max=self.retry_wait_max),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    text = await asyncio.wait_for(
                        self._complete(system_prompt, user_prompt, max_tokens, temperature),
                        timeout=self.timeout_seconds,
                    )
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            raise UpstreamError(f"Schedule planner timed out after {self.timeout_seconds}s")
        except Exception as e:
            logger.error(f"Schedule planner call failed: {str(e)}", exc_info=True)
            raise UpstreamError(f"Schedule planner failed: {str(e)}")

        logger.debug(f"Raw planner response: {text}")
        if not text or not text.strip():
            raise UpstreamError("Empty response from schedule planner")
        return text

    async def _complete(self, system_prompt: str, user_prompt: str,
                        max_tokens: int, temperature: float) -> str:
        if self.provider == "gemini":
            return await self._complete_gemini(system_prompt, user_prompt, max_tokens, temperature)

        agent = Agent(
            name="Schedule Planner",
            instructions=system_prompt,
            model=self.config.get("model"),
            model_settings=ModelSettings(temperature=temperature, max_tokens=max_tokens),
        )
        result = await Runner.run(agent, user_prompt)
        return result.final_output

    async def _complete_gemini(self, system_prompt: str, user_prompt: str,
                               max_tokens: int, temperature: float) -> str:
        model = genai.GenerativeModel(
            model_name=self.config.get("gemini_model"),
            system_instruction=system_prompt,
            generation_config={
                "temperature": temperature,
                "max_output_tokens": max_tokens,
            },
        )
        response = await model.generate_content_async(user_prompt)
        return response.text
