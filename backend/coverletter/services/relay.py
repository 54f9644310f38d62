"""Stream relay — upstream completion SSE in, per-character SSE out.

Each upstream ``choices[0].delta.content`` fragment is split into single
characters, one downstream frame per character, with a short pause before
each one so the browser shows the letter being typed. Literal newlines are
sent as ``<NEWLINE>`` because a raw ``\\n`` would end the SSE line.

Downstream frames, in order:
    data: Starting generation...     (placeholder, clients ignore it)
    data: <char> | data: <NEWLINE>   (one per generated character)
    event: error / data: {...}       (only if the upstream failed mid-stream)
    data: [DONE]                     (always exactly once, unless the client left)
"""

import asyncio
import json
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

import httpx

from coverletter.config import Settings
from coverletter.core.constants import (
    BASE_DELAY,
    CLAUSE_CHARS,
    CLAUSE_DELAY,
    DONE_SENTINEL,
    NEWLINE_MARKER,
    PERIODIC_DELAY,
    PERIODIC_EVERY,
    SENTENCE_END_CHARS,
    SENTENCE_END_DELAY,
    STARTING_PLACEHOLDER,
    WHITESPACE_DELAY,
)
from coverletter.core.errors import StreamTransportError
from coverletter.core.logger import logger


class RelayState(Enum):
    AWAITING_FIRST_CONTENT = "awaiting_first_content"
    STREAMING = "streaming"
    DONE = "done"


class UpstreamFrame(NamedTuple):
    content: str
    done: bool = False


@dataclass(frozen=True)
class Pacing:
    """Per-character typing delays, in seconds."""

    enabled: bool = True
    sentence_end: float = SENTENCE_END_DELAY
    clause: float = CLAUSE_DELAY
    whitespace: float = WHITESPACE_DELAY
    periodic: float = PERIODIC_DELAY
    periodic_every: int = PERIODIC_EVERY
    base: float = BASE_DELAY

    @classmethod
    def disabled(cls) -> "Pacing":
        return cls(enabled=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Pacing":
        return cls(
            enabled=settings.relay_pacing_enabled,
            sentence_end=settings.relay_sentence_end_delay,
            clause=settings.relay_clause_delay,
            whitespace=settings.relay_whitespace_delay,
            periodic=settings.relay_periodic_delay,
            periodic_every=settings.relay_periodic_every,
            base=settings.relay_base_delay,
        )

    def delay_for(self, char: str, index: int) -> float:
        """Delay before emitting ``char``, the ``index``-th character of the stream."""
        if not self.enabled:
            return 0.0
        if char in SENTENCE_END_CHARS:
            return self.sentence_end
        if char in CLAUSE_CHARS:
            return self.clause
        if char.isspace():
            return self.whitespace
        if self.periodic_every and index and index % self.periodic_every == 0:
            return self.periodic
        return self.base


def sse_frame(payload: str) -> str:
    """Format a single ``data:`` frame."""
    return f"data: {payload}\n\n"


def sse_event(event: str, data: dict) -> str:
    """Format a named SSE event with a JSON payload."""
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def parse_upstream_line(line: str) -> UpstreamFrame | None:
    """Decode one line of the upstream SSE body.

    Returns None for anything that carries no content: blank lines, comments
    (``: keep-alive``), non-data fields, role-only deltas and malformed JSON.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None

    payload = line[len("data:"):].strip()
    if payload == DONE_SENTINEL:
        return UpstreamFrame("", done=True)

    try:
        chunk = json.loads(payload)
        content = chunk["choices"][0]["delta"].get("content")
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        logger.debug(f"Skipping malformed upstream frame: {payload[:80]!r}")
        return None

    if not isinstance(content, str):
        return None
    return UpstreamFrame(content)


class StreamRelay:
    """Re-chunks one upstream completion stream for one downstream client."""

    def __init__(
        self,
        pacing: Pacing | None = None,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.pacing = pacing or Pacing()
        self.state = RelayState.AWAITING_FIRST_CONTENT
        self.emitted = 0
        self._is_disconnected = is_disconnected
        self._sleep = sleep

    async def _client_gone(self) -> bool:
        return self._is_disconnected is not None and await self._is_disconnected()

    async def relay(self, lines: AsyncIterable[str]) -> AsyncIterator[str]:
        """Yield downstream frames for the upstream ``lines``."""
        yield sse_frame(STARTING_PLACEHOLDER)

        try:
            async for line in lines:
                if await self._client_gone():
                    logger.info(f"Client disconnected after {self.emitted} chars — stopping relay")
                    self.state = RelayState.DONE
                    return
                frame = parse_upstream_line(line)
                if frame is None:
                    continue
                if frame.done:
                    break
                async for out in self._emit_fragment(frame.content):
                    yield out
        except (httpx.HTTPError, StreamTransportError) as e:
            err = e if isinstance(e, StreamTransportError) else StreamTransportError(
                f"Upstream stream failed: {e}"
            )
            logger.error(f"Stream transport error after {self.emitted} chars: {err.message}")
            yield sse_event("error", {"message": err.message})
        except Exception as e:
            logger.error(f"Unexpected relay error: {e}", exc_info=True)
            yield sse_event("error", {"message": "Internal server error"})

        self.state = RelayState.DONE
        logger.info(f"Relay finished: {self.emitted} chars emitted")
        yield sse_frame(DONE_SENTINEL)

    async def _emit_fragment(self, fragment: str) -> AsyncIterator[str]:
        if self.state is RelayState.AWAITING_FIRST_CONTENT:
            if not fragment:
                return
            if fragment == STARTING_PLACEHOLDER:
                logger.debug("Suppressed upstream placeholder fragment")
                return
            self.state = RelayState.STREAMING

        for char in fragment:
            delay = self.pacing.delay_for(char, self.emitted)
            if delay:
                await self._sleep(delay)
            self.emitted += 1
            yield sse_frame(NEWLINE_MARKER if char == "\n" else char)
