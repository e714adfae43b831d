"""Generator agent that asks the LLM for the day's news digest.

The agent is a plain text-completion client: it sends one prompt and returns
the raw text. JSON extraction and validation happen in extraction.py so the
provider contract stays "prompt in, string out".

Provider failures are translated into the digest error hierarchy:
    - ModelHTTPError (non-2xx response) -> UpstreamError(status, body)
    - Connection failures and timeouts (httpx, openai client) -> UpstreamError(0, reason)
    - UnexpectedModelBehavior / blank text -> EmptyResponseError

No retries are attempted here; a failed run falls back to the previous
digest and the next scheduled run tries again.
"""

import logging
from datetime import date

import httpx
from openai import APIConnectionError, AsyncOpenAI
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIModel
from pydantic_ai.profiles.openai import OpenAIModelProfile
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from config import Config
from errors import EmptyResponseError, UpstreamError
from models.story import Category, Region, Urgency, enum_values

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are a neutral, factual news editor. "
    "You answer with raw JSON only: no markdown, no code fences, no commentary."
)

DIGEST_PROMPT = """Give a concise, factual, reliable digest of the MOST important global news \
from the last 24 hours, for {date}.

Return EXACTLY {story_count} stories. For each story:
- headline: under 80 characters
- summary: 1-2 sentences, under 150 characters
- category: one of {categories}
- region: one of {regions}
- urgency: one of {urgencies}

Keep the selection globally relevant and avoid duplicate events.

Respond with raw JSON only, no markdown and no code fences, in exactly this shape:
{{
  "date": "{date}",
  "stories": [
    {{
      "headline": "...",
      "summary": "...",
      "category": "{example_category}",
      "region": "{example_region}",
      "urgency": "{example_urgency}"
    }}
  ]
}}"""


def build_prompt(digest_date: str, story_count: int = 5) -> str:
    """Render the digest prompt for a calendar date.

    Args:
        digest_date: ISO date (YYYY-MM-DD) the stories should cover
        story_count: Number of stories to request

    Returns:
        Prompt text, identical for identical inputs

    Raises:
        ValueError: If digest_date is not a valid calendar date
    """
    date.fromisoformat(digest_date)

    def _choices(values: list[str]) -> str:
        return ", ".join(values)

    return DIGEST_PROMPT.format(
        date=digest_date,
        story_count=story_count,
        categories=_choices(enum_values(Category)),
        regions=_choices(enum_values(Region)),
        urgencies=_choices(enum_values(Urgency)),
        example_category=Category.WORLD.value,
        example_region=Region.GLOBAL.value,
        example_urgency=Urgency.HIGH.value,
    )


def _parse_local_model(model_str: str) -> tuple[str, str] | None:
    """Parse local model string into (model_name, base_url) or None if not local."""
    if model_str.startswith("openai:") and "@" in model_str:
        rest = model_str[7:]  # Remove "openai:" prefix
        model_name, base_url = rest.split("@", 1)
        return model_name, base_url
    return None


def _create_model(model_str: str) -> Model | str:
    """Create the model for a model string.

    Supports:
    - Local OpenAI-compatible servers: 'openai:{model_name}@http://127.0.0.1:8080/v1'
    - Remote models: 'google-gla:gemini-2.5-flash' (passed through to PydanticAI)
    """
    parsed = _parse_local_model(model_str)
    if parsed:
        model_name, base_url = parsed
        logger.info("Using local model | model=%s base_url=%s", model_name, base_url)
        client = AsyncOpenAI(base_url=base_url, api_key="local-model")
        profile = OpenAIModelProfile(supports_json_object_output=False)
        return OpenAIModel(
            model_name=model_name,
            provider=OpenAIProvider(openai_client=client),
            profile=profile,
        )
    return model_str


def build_model_settings(config: Config) -> ModelSettings:
    """Map generation parameters onto PydanticAI model settings.

    top_k has no provider-neutral setting; it is forwarded in the request
    body for OpenAI-compatible servers only.
    """
    settings = ModelSettings(
        temperature=config.temperature,
        max_tokens=config.max_output_tokens,
        top_p=config.top_p,
    )
    if config.top_k > 0 and _parse_local_model(config.generator_model):
        settings["extra_body"] = {"top_k": config.top_k}
    return settings


class GeneratorAgent:
    """Text-completion client for digest generation.

    Example:
        >>> agent = GeneratorAgent(config)
        >>> text = await agent.complete(build_prompt("2026-10-16"))
    """

    def __init__(self, config: Config, model: Model | str | None = None):
        """Initialize the generator.

        Args:
            config: Application configuration with model and generation settings
            model: Optional model override (used by tests)
        """
        self.config = config
        self._model_settings = build_model_settings(config)
        self._agent = Agent(
            model if model is not None else _create_model(config.generator_model),
            output_type=str,
            system_prompt=SYSTEM_PROMPT,
            retries=0,
        )

    async def complete(self, prompt: str) -> str:
        """Send a single prompt and return the raw response text.

        Raises:
            UpstreamError: Provider returned a non-success status or could not be reached
            EmptyResponseError: Provider returned no text
        """
        try:
            result = await self._agent.run(prompt, model_settings=self._model_settings)
        except ModelHTTPError as e:
            logger.warning(
                "Generation request failed | model=%s status=%d",
                e.model_name, e.status_code,
            )
            raise UpstreamError(e.status_code, e.body) from e
        except UnexpectedModelBehavior as e:
            raise EmptyResponseError(f"Provider returned no usable text: {e}") from e
        except (httpx.HTTPError, APIConnectionError, TimeoutError) as e:
            reason = str(e) or type(e).__name__
            logger.warning(
                "Generation request failed | model=%s error=%s",
                self.config.generator_model, reason,
            )
            raise UpstreamError(0, reason) from e

        text = result.output or ""
        if not text.strip():
            raise EmptyResponseError("Provider returned an empty completion")

        logger.info("Generation complete | model=%s chars=%d", self.config.generator_model, len(text))
        return text
