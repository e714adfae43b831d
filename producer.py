"""Digest producer: generate, validate, publish, or fall back.

One run walks this state machine:

    IDLE -> GENERATING -> VALIDATING -> PUBLISHING -> DONE
                 |             |
                 +-------------+--> GENERATION_FAILED -> LOADING_PREVIOUS
                                        -> PUBLISHING_FALLBACK -> DONE
                                        -> NO_PREVIOUS_AVAILABLE -> FATAL

Any generation error, and a digest with zero stories, leads to the
fallback branch: the last published digest is republished with a fresh
updatedAt and `fallback: true`. Without a previous digest the run is fatal
and nothing is written. There is no retry loop; the scheduler simply
runs again later.
"""

import logging
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Protocol

from agents.generator import GeneratorAgent, build_prompt
from config import Config
from errors import EmptyResponseError, FatalRunError, GenerationError, InvalidSchemaError
from extraction import parse_json_payload, validate_structure
from models.digest import parse_timestamp
from observability.logging import clear_context, set_run_context
from observability.tracing import trace_operation
from storage import read_digest, write_digest

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Anything that turns a prompt into response text."""

    async def complete(self, prompt: str) -> str: ...


class RunState(str, Enum):
    """States of a single producer run."""

    IDLE = "idle"
    GENERATING = "generating"
    VALIDATING = "validating"
    PUBLISHING = "publishing"
    GENERATION_FAILED = "generation_failed"
    LOADING_PREVIOUS = "loading_previous"
    PUBLISHING_FALLBACK = "publishing_fallback"
    NO_PREVIOUS_AVAILABLE = "no_previous_available"
    DONE = "done"
    FATAL = "fatal"


@dataclass
class PromptContext:
    """Inputs to the prompt template.

    Attributes:
        date: Calendar date (YYYY-MM-DD) the digest covers
    """

    date: str

    def __post_init__(self):
        try:
            date.fromisoformat(self.date)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid digest date: {self.date!r}")


@dataclass
class RunOutcome:
    """Result of one producer run.

    Attributes:
        state: Terminal state (DONE or FATAL)
        fallback: True if the previous digest was republished
        stories: Number of stories in the published digest
        error: Description of the generation or publish failure, if any
        duration: Run time in seconds
    """

    state: RunState
    fallback: bool = False
    stories: int = 0
    error: str | None = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state == RunState.DONE

    def check(self) -> "RunOutcome":
        """Return self, or raise FatalRunError if nothing was published."""
        if not self.ok:
            raise FatalRunError(self.error or "Producer run ended without publishing")
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["state"] = self.state.value
        d["duration"] = round(d["duration"], 2)
        return d


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as an ISO 8601 UTC timestamp with millisecond precision."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DigestProducer:
    """Produces and publishes the news digest.

    Example:
        >>> producer = DigestProducer(config, GeneratorAgent(config))
        >>> outcome = await producer.run_once()
        >>> outcome.ok
        True
    """

    def __init__(
        self,
        config: Config,
        generator: TextGenerator,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize the producer.

        Args:
            config: Application configuration
            generator: Text-completion client
            clock: Source of the current time (UTC-aware)
        """
        self.config = config
        self.generator = generator
        self.clock = clock
        self.state = RunState.IDLE

    def _transition(self, state: RunState) -> None:
        logger.debug("Producer state | %s -> %s", self.state.value, state.value)
        self.state = state

    def _stamp_time(self, previous: dict[str, Any] | None) -> str:
        """Current timestamp, never earlier than the previous digest's updatedAt."""
        now = self.clock()
        if previous:
            last = parse_timestamp(str(previous.get("updatedAt") or ""))
            if last is not None and last.tzinfo is not None and last > now:
                logger.warning("Clock behind published digest | now=%s last=%s", now.isoformat(), last.isoformat())
                now = last
        return format_timestamp(now)

    async def generate(self, context: PromptContext | None = None) -> dict[str, Any]:
        """Generate a fresh digest.

        Args:
            context: Prompt inputs (defaults to today's date)

        Returns:
            Digest document with parsed fields plus producer stamps

        Raises:
            UpstreamError, EmptyResponseError, MalformedJsonError,
            InvalidSchemaError: See errors.py
        """
        if context is None:
            context = PromptContext(date=self.clock().date().isoformat())

        self._transition(RunState.GENERATING)
        prompt = build_prompt(context.date, self.config.story_count)
        text = await self.generator.complete(prompt)
        if not text or not text.strip():
            raise EmptyResponseError("Generator returned no text")

        self._transition(RunState.VALIDATING)
        payload = validate_structure(
            parse_json_payload(text),
            strict=self.config.strict_validation,
        )

        stories = payload["stories"]
        if len(stories) != self.config.story_count:
            logger.warning(
                "Unexpected story count | expected=%d got=%d",
                self.config.story_count, len(stories),
            )

        digest: dict[str, Any] = {
            "date": context.date,
            "version": self.config.digest_version,
            "source": self.config.digest_source,
        }
        digest.update(payload)
        digest["updatedAt"] = format_timestamp(self.clock())
        digest.pop("fallback", None)
        return digest

    def publish(self, digest: dict[str, Any]) -> None:
        """Write the digest to the artifact location, replacing prior content."""
        write_digest(self.config.news_file, digest)

    def load_previous(self) -> dict[str, Any] | None:
        """Load the last published digest, or None if there is none."""
        return read_digest(self.config.news_file)

    async def run_once(self) -> RunOutcome:
        """Execute one producer run.

        Returns:
            RunOutcome; state is FATAL only when generation failed and no
            previous digest could be loaded (or the artifact write failed)
        """
        run_id = uuid.uuid4().hex[:8]
        set_run_context(run_id)
        start = time.time()
        self.state = RunState.IDLE
        logger.info("Producer run started | model=%s file=%s", self.config.generator_model, self.config.news_file)

        try:
            with trace_operation("digest_run", {"run_id": run_id}) as span:
                outcome = await self._run()
                span["state"] = outcome.state.value
                span["fallback"] = outcome.fallback
            outcome.duration = time.time() - start
            logger.info(
                "Producer run finished | state=%s fallback=%s duration=%.2fs",
                outcome.state.value, outcome.fallback, outcome.duration,
                extra={"outcome": outcome.to_dict()},
            )
            return outcome
        finally:
            clear_context()

    async def _run(self) -> RunOutcome:
        failure: str
        try:
            digest = await self.generate()
            if not digest["stories"]:
                raise InvalidSchemaError("Generated digest has no stories")
        except (GenerationError, ValueError) as e:
            failure = f"{type(e).__name__}: {e}"
            self._transition(RunState.GENERATION_FAILED)
            logger.warning("Generation failed, falling back | error=%s", failure)
        else:
            self._transition(RunState.PUBLISHING)
            digest["updatedAt"] = self._stamp_time(self.load_previous())
            try:
                self.publish(digest)
            except OSError as e:
                self._transition(RunState.FATAL)
                logger.error("Publish failed | error=%s", e, exc_info=True)
                return RunOutcome(state=RunState.FATAL, error=f"{type(e).__name__}: {e}")
            self._transition(RunState.DONE)
            logger.info("Fresh digest published | stories=%d", len(digest["stories"]))
            return RunOutcome(state=RunState.DONE, stories=len(digest["stories"]))

        self._transition(RunState.LOADING_PREVIOUS)
        previous = self.load_previous()
        if previous is None:
            self._transition(RunState.NO_PREVIOUS_AVAILABLE)
            self._transition(RunState.FATAL)
            logger.error("No previous digest to fall back to | error=%s", failure)
            return RunOutcome(state=RunState.FATAL, error=failure)

        self._transition(RunState.PUBLISHING_FALLBACK)
        fallback = dict(previous)
        fallback["updatedAt"] = self._stamp_time(previous)
        fallback["fallback"] = True
        try:
            self.publish(fallback)
        except OSError as e:
            self._transition(RunState.FATAL)
            logger.error("Fallback publish failed | error=%s", e, exc_info=True)
            return RunOutcome(state=RunState.FATAL, fallback=True, error=f"{type(e).__name__}: {e}")

        self._transition(RunState.DONE)
        stories = fallback.get("stories")
        count = len(stories) if isinstance(stories, list) else 0
        logger.warning("Fallback digest republished | stories=%d", count)
        return RunOutcome(state=RunState.DONE, fallback=True, stories=count, error=failure)


async def run_once(config: Config) -> RunOutcome:
    """Run the producer once with the configured generator."""
    producer = DigestProducer(config, GeneratorAgent(config))
    return await producer.run_once()
