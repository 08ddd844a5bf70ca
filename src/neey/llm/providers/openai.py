import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ...config import DEFAULT_MODEL, OPENAI_BASE_URL
from ..base import LLMProvider
from ..cancellation import CancellationToken
from ..errors import LLMAuthenticationError, LLMConnectionError
from ..models import ChatMessage, LLMResponse, StreamingResponse
from ..sse import FrameType, parse_frame

logger = logging.getLogger(__name__)

_AUTH_STATUS_CODES = {401, 403}


def _default_http_client() -> httpx.AsyncClient:
    # No read timeout: a stream may idle between tokens for a long time
    return httpx.AsyncClient(
        timeout=httpx.Timeout(connect=10.0, read=None, write=30.0, pool=None)
    )


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider.

    Hidden design decisions:
    - Streaming reads the raw ``data:`` frames line by line over httpx so that
      a single malformed chunk can be skipped without losing the stream
    - Non-streaming completions go through the OpenAI SDK
    - Authentication mechanism (bearer token)
    - Translation of transport errors into ``LLMError`` subclasses
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str | None = None,
        organization: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        **client_kwargs: Any
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Default model to use
            base_url: Optional custom API base URL (OpenAI-compatible servers)
            organization: Optional organization ID
            http_client: Optional httpx client shared by streaming and SDK requests
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        self._model = model
        self._base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        if organization:
            self._headers["OpenAI-Organization"] = organization

        self._http = http_client or _default_http_client()
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=self._base_url,
            organization=organization,
            http_client=self._http,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    @property
    def completions_url(self) -> str:
        return f"{self._base_url}/chat/completions"

    def build_payload(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> dict[str, Any]:
        """JSON body shared by streamed and one-shot requests."""
        payload: dict[str, Any] = {
            "model": model or self._model,
            "messages": [msg.model_dump() for msg in messages],
            "temperature": temperature,
            **kwargs,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Ask for the whole answer at once through the SDK."""
        payload = self.build_payload(messages, model, temperature, max_tokens, **kwargs)
        logger.info("Requesting completion (model=%s, %d messages)", payload["model"], len(messages))

        try:
            completion = await self._client.chat.completions.create(**payload)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise LLMAuthenticationError(str(e)) from e
        except openai.APIError as e:
            raise LLMConnectionError(str(e)) from e

        if not completion.choices:
            raise LLMConnectionError(f"Completion from {completion.model} has no choices")

        return LLMResponse(
            content=completion.choices[0].message.content or "",
            model=completion.model,
            usage=completion.usage.model_dump(
                include={"prompt_tokens", "completion_tokens", "total_tokens"}
            ) if completion.usage else None,
        )

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        cancel_token: CancellationToken | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Open a streamed completion; the POST happens on first iteration."""
        payload = self.build_payload(messages, model, temperature, max_tokens, stream=True, **kwargs)
        response = StreamingResponse(
            self._chat_stream_generator(payload, cancel_token, lambda usage: response.set_usage(usage))
        )
        return response

    async def _chat_stream_generator(
        self,
        payload: dict[str, Any],
        cancel_token: CancellationToken | None,
        on_usage: Callable[[dict[str, Any]], None],
    ) -> AsyncIterator[str]:
        """Internal generator reading ``data:`` frames from the response."""
        logger.info(
            "Streaming completion from %s (model=%s, %d messages)",
            self.completions_url, payload["model"], len(payload["messages"])
        )
        skipped = 0
        try:
            async with self._http.stream(
                "POST", self.completions_url, json=payload, headers=self._headers
            ) as response:
                if response.status_code in _AUTH_STATUS_CODES:
                    raise LLMAuthenticationError(
                        f"Completion endpoint rejected the API key (HTTP {response.status_code})"
                    )
                if response.is_error:
                    await response.aread()
                    raise LLMConnectionError(
                        f"Completion request failed with HTTP {response.status_code}: "
                        f"{response.text[:200]}"
                    )

                async for line in response.aiter_lines():
                    if cancel_token is not None and cancel_token.cancelled:
                        logger.info("Stream cancelled before next line")
                        return

                    frame = parse_frame(line)
                    if frame.type is FrameType.DONE:
                        logger.info("Stream completed")
                        return
                    if frame.type is not FrameType.CHUNK:
                        skipped += 1
                        continue
                    if frame.usage is not None:
                        on_usage(frame.usage)
                    if frame.content:
                        yield frame.content
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise LLMConnectionError(f"{type(e).__name__}: {e}") from e
        finally:
            if skipped:
                logger.debug("Skipped %d non-content lines", skipped)

    async def close(self) -> None:
        """Close the SDK client and the httpx client it shares."""
        await self._client.close()
        await self._http.aclose()
