"""Exception hierarchy for the digest producer and consumer.

Producer-side errors (subclasses of GenerationError) are recovered by
republishing the previous digest. UnavailableError is the only consumer-side
error and reaches the UI only when no cached digest exists.
"""


class DigestError(Exception):
    """Base class for all digest pipeline errors."""


class GenerationError(DigestError):
    """Generation failed; the producer falls back to the previous digest."""


class UpstreamError(GenerationError):
    """The generation provider failed or returned a non-success response.

    status_code is 0 when no response was received (connection error, timeout).
    """

    def __init__(self, status_code: int, body: object = None):
        self.status_code = status_code
        self.body = body
        if status_code:
            message = f"Upstream returned HTTP {status_code}: {str(body)[:200]}"
        else:
            message = f"Upstream request failed: {str(body)[:200]}"
        super().__init__(message)


class EmptyResponseError(GenerationError):
    """The provider answered successfully but with no text."""


class MalformedJsonError(GenerationError):
    """Neither the raw text nor an embedded {...} block parsed as JSON."""

    def __init__(self, text: str, cause: Exception | None = None):
        self.text = text
        self.cause = cause
        super().__init__(f"Could not parse JSON from response: {cause}")


class InvalidSchemaError(GenerationError):
    """Parsed JSON does not have the digest structure."""


class FatalRunError(DigestError):
    """The producer run ended without publishing anything.

    Raised by RunOutcome.check() when generation failed and there was no
    previous digest to republish, or the artifact could not be written.
    """


class UnavailableError(DigestError):
    """The digest could not be fetched and nothing is cached."""
