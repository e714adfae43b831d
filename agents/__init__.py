"""PydanticAI agents for the news digest producer.

GeneratorAgent:
    Single-shot text completion that asks the model for the day's
    digest as raw JSON.

build_prompt:
    Deterministic prompt template parameterized by date and story count.

Example:
    >>> from agents import GeneratorAgent, build_prompt
    >>> generator = GeneratorAgent(config)
    >>> text = await generator.complete(build_prompt("2026-10-16"))
"""

from agents.generator import GeneratorAgent, build_prompt

__all__ = [
    "GeneratorAgent",
    "build_prompt",
]
