# product_research/errors.py

"""Exception types shared across the research pipeline."""


class ResearchError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationMissing(ResearchError):
    """A mandatory credential or identifier is not configured."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} is not set. Add it to .env or the environment.")


class UpstreamHttpError(ResearchError):
    """A provider answered with a non-success status."""

    def __init__(self, provider: str, status: int, body: str = "") -> None:
        self.provider = provider
        self.status = status
        self.body = body
        detail = f": {body[:200]}" if body else ""
        super().__init__(f"{provider} {status}{detail}")


class RateLimited(UpstreamHttpError):
    """HTTP 429 from a provider."""

    def __init__(self, provider: str, body: str = "") -> None:
        super().__init__(
            provider, 429, body or "quota/rate limit exceeded"
        )


class ParseError(ResearchError):
    """A provider payload could not be decoded or mapped."""


class NotFound(ParseError):
    """A provider payload was well-formed but carried no usable object."""


class SchemaError(ResearchError):
    """A batch lacks the columns a stage needs."""
