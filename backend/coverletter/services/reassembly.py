"""Client-side reassembly of the per-character stream.

Network reads do not line up with frames, so FrameDecoder buffers until a
blank-line delimiter. CoverLetterAssembler turns decoded frames back into
the letter text. static/app.js implements the same steps for the browser.
"""

import json
from dataclasses import dataclass, field

from coverletter.core.constants import DONE_SENTINEL, NEWLINE_MARKER, STARTING_PLACEHOLDER

FRAME_DELIMITER = "\n\n"


@dataclass
class Frame:
    event: str = "message"
    data: str = ""


class FrameDecoder:
    """Incremental SSE frame parser."""

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Bytes received but not yet part of a complete frame."""
        return self._buffer

    def feed(self, chunk: str) -> list[Frame]:
        self._buffer += chunk
        frames = []
        while FRAME_DELIMITER in self._buffer:
            block, self._buffer = self._buffer.split(FRAME_DELIMITER, 1)
            frame = self._parse_block(block)
            if frame is not None:
                frames.append(frame)
        return frames

    @staticmethod
    def _parse_block(block: str) -> Frame | None:
        # Split on "\n" only: a "\r" payload is a character, not a line end.
        event = "message"
        data_lines = []
        for line in block.split("\n"):
            if not line or line.startswith(":"):
                continue
            name, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]
            if name == "event":
                event = value
            elif name == "data":
                data_lines.append(value)
        if not data_lines:
            return None
        return Frame(event=event, data="\n".join(data_lines))


@dataclass
class CoverLetterAssembler:
    """Accumulates streamed characters into the letter text."""

    placeholder: str = STARTING_PLACEHOLDER
    done: bool = False
    errors: list[str] = field(default_factory=list)
    _parts: list[str] = field(default_factory=list, repr=False)
    _decoder: FrameDecoder = field(default_factory=FrameDecoder, repr=False)

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def apply(self, frame: Frame) -> str:
        """Apply one frame; return the text it appended ("" if none)."""
        if self.done:
            return ""
        if frame.event == "error":
            try:
                message = json.loads(frame.data).get("message", frame.data)
            except (ValueError, AttributeError):
                message = frame.data
            self.errors.append(message)
            return ""
        if frame.data == DONE_SENTINEL:
            self.done = True
            return ""
        if frame.data == self.placeholder:
            return ""
        piece = "\n" if frame.data == NEWLINE_MARKER else frame.data
        self._parts.append(piece)
        return piece

    def feed(self, chunk: str) -> str:
        """Feed a raw network read; return the text appended by it."""
        return "".join(self.apply(frame) for frame in self._decoder.feed(chunk))


def reassemble(raw: str) -> str:
    """Reassemble a complete response body into the letter text."""
    assembler = CoverLetterAssembler()
    assembler.feed(raw)
    return assembler.text
