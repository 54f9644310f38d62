"""Chat-completion client for the DeepSeek (OpenAI-compatible) API.

All calls are async over a shared httpx.AsyncClient. Configuration is passed
in explicitly; routes receive the client through a FastAPI dependency so tests
can swap in an httpx.MockTransport.
Retry via tenacity for connection-level failures only: once the upstream has
answered, nothing is retried.
"""

import json
import re
from collections.abc import AsyncIterator

import httpx
from fastapi import Request
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from coverletter.config import Settings, load_settings
from coverletter.core.constants import ERROR_BODY_TRUNCATE_LENGTH, UPSTREAM_RETRY_ATTEMPTS
from coverletter.core.errors import (
    UpstreamConnectionError,
    UpstreamFormatError,
    UpstreamHttpError,
)
from coverletter.core.langfuse_client import observe
from coverletter.core.logger import logger

# Failures where the request never reached the upstream
_RETRYABLE = (httpx.ConnectError, httpx.ConnectTimeout)

_retry_connect = retry(
    stop=stop_after_attempt(UPSTREAM_RETRY_ATTEMPTS),
    wait=wait_exponential(min=1, max=5),
    retry=retry_if_exception_type(_RETRYABLE),
    reraise=True,
)


_SSE_LINE_END = re.compile(r"\r\n|\r|\n")


def _truncate(text: str) -> str:
    return text[:ERROR_BODY_TRUNCATE_LENGTH]


class UpstreamStream:
    """Live handle over a streaming completion response.

    The caller owns SSE decoding; this only yields decoded text lines as
    they arrive. ``aclose`` is idempotent.
    """

    def __init__(self, response: httpx.Response):
        self._response = response
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def lines(self) -> AsyncIterator[str]:
        # Split on SSE line ends only. aiter_lines() also breaks on U+2028,
        # U+0085 and friends, which JSON strings may carry unescaped.
        buffer = ""
        async for text in self._response.aiter_text():
            buffer += text
            *complete, buffer = _SSE_LINE_END.split(buffer)
            for line in complete:
                yield line
        if buffer:
            yield buffer

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()
        logger.debug("Upstream stream closed")

    async def __aenter__(self) -> "UpstreamStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


class CompletionClient:
    """Sends prompts to ``{base_url}/chat/completions``."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.deepseek.com",
        model: str = "deepseek-chat",
        temperature: float = 0.7,
        max_tokens: int = 2048,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "CompletionClient":
        if not settings.deepseek_api_key:
            logger.warning("DEEPSEEK_API_KEY is not set — upstream calls will be rejected")
        return cls(
            api_key=settings.deepseek_api_key,
            base_url=settings.deepseek_base_url,
            model=settings.deepseek_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.llm_timeout_seconds,
        )

    def _payload(self, prompt: str, stream: bool) -> dict:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": stream,
        }

    @observe(name="cover-letter-completion", capture_input=False)
    async def complete(self, prompt: str) -> str:
        """Non-streaming call. Returns ``choices[0].message.content``."""
        logger.info(f"Requesting completion (prompt length={len(prompt)}, stream=False)")
        try:
            response = await self._post(self._payload(prompt, stream=False))
        except httpx.HTTPError as e:
            raise UpstreamConnectionError(f"Could not reach the completion API: {e}") from e

        logger.info(f"Upstream response status: {response.status_code}")
        if not response.is_success:
            logger.error(f"API error response: {_truncate(response.text)}")
            raise UpstreamHttpError(response.status_code, _truncate(response.text))

        try:
            data = response.json()
        except ValueError:
            raise UpstreamFormatError(
                f"Invalid JSON response ({response.status_code}): {_truncate(response.text)}"
            )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str):
            raise UpstreamFormatError(f"Unexpected response format: {_truncate(json.dumps(data))}")

        return content

    @observe(name="cover-letter-completion-stream", capture_input=False, capture_output=False)
    async def open_stream(self, prompt: str) -> UpstreamStream:
        """Streaming call. Returns once the response headers have arrived."""
        logger.info(f"Requesting completion (prompt length={len(prompt)}, stream=True)")
        try:
            response = await self._send_stream(self._payload(prompt, stream=True))
        except httpx.HTTPError as e:
            raise UpstreamConnectionError(f"Could not reach the completion API: {e}") from e

        logger.info(f"Upstream response status: {response.status_code}")
        if not response.is_success:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            except httpx.HTTPError:
                body = ""
            finally:
                await response.aclose()
            logger.error(f"API error response: {_truncate(body)}")
            raise UpstreamHttpError(response.status_code, _truncate(body))

        return UpstreamStream(response)

    @_retry_connect
    async def _post(self, payload: dict) -> httpx.Response:
        return await self._http.post("/chat/completions", json=payload)

    @_retry_connect
    async def _send_stream(self, payload: dict) -> httpx.Response:
        request = self._http.build_request("POST", "/chat/completions", json=payload)
        return await self._http.send(request, stream=True)

    async def aclose(self) -> None:
        await self._http.aclose()


async def get_completion_client(request: Request) -> CompletionClient:
    """FastAPI dependency: one client per application, built on first use."""
    client = getattr(request.app.state, "completion_client", None)
    if client is None:
        client = CompletionClient.from_settings(load_settings())
        request.app.state.completion_client = client
    return client
