from typing import Any

from .base import LLMProvider
from .providers import OpenAIProvider

_PROVIDERS: dict[str, type[LLMProvider]] = {
    "openai": OpenAIProvider,
}


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Build a provider by name.

    Only ``"openai"`` is registered; pass ``base_url`` to talk to any server
    that speaks the same chat completions protocol. Lookup ignores case.

    Keyword arguments go to the provider unchanged: ``api_key`` (required),
    ``model``, ``base_url``, ``organization`` and ``http_client``.

    Raises:
        ValueError: Unknown provider name
        TypeError: ``api_key`` missing
    """
    name = provider.lower()
    provider_cls = _PROVIDERS.get(name)
    if provider_cls is None:
        supported = ", ".join(repr(key) for key in _PROVIDERS)
        raise ValueError(f"Unsupported provider: {provider}. Supported providers: {supported}")

    if "api_key" not in config:
        raise TypeError(f"{name} provider requires 'api_key' in config")
    return provider_cls(**config)
