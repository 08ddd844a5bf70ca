from .base import LLMProvider
from .cancellation import CancellationToken
from .errors import LLMAuthenticationError, LLMConnectionError, LLMError
from .factory import create_llm_provider
from .models import ChatMessage, LLMResponse, StreamingResponse
from .providers import OpenAIProvider

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "CancellationToken",
    "ChatMessage",
    "LLMResponse",
    "StreamingResponse",
    "LLMError",
    "LLMAuthenticationError",
    "LLMConnectionError",
    "OpenAIProvider",
]
