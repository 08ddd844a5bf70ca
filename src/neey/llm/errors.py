"""Provider-independent completion errors.

Providers translate their transport library's exceptions into these so that
callers never depend on the HTTP client in use.
"""


class LLMError(Exception):
    """Base class for completion failures."""


class LLMConnectionError(LLMError):
    """Transport failure, timeout, bad status or undecodable response body."""


class LLMAuthenticationError(LLMError):
    """The endpoint rejected the API key (HTTP 401/403)."""
