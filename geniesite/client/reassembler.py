"""Frame reassembler — rebuilds protocol events from an arbitrarily chunked byte stream.

The transport gives no guarantee that a read ends on a frame boundary, or
even on a character boundary. Bytes go through an incremental UTF-8 decoder
into a single text buffer; complete frames (terminated by a blank line) are
decoded, the trailing partial frame stays buffered for the next read.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Union

from pydantic import ValidationError

from geniesite.events import FRAME_TERMINATOR
from geniesite.schemas import ProtocolEvent, parse_event

logger = logging.getLogger(__name__)

DATA_FIELD = "data:"


@dataclass(frozen=True)
class MalformedFrame:
    """Notice for a frame whose payload could not be decoded.

    raw:    the data payload as received
    reason: the decoder's error message
    """

    raw: str
    reason: str


DecodedItem = Union[ProtocolEvent, MalformedFrame]


class FrameReassembler:
    """Incremental SSE frame decoder. One instance per response stream."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received but not yet terminated by a blank line."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[DecodedItem]:
        """Add one transport read; return every frame it completed, in order."""
        self._buffer += self._decoder.decode(chunk)
        self._buffer = self._buffer.replace("\r\n", "\n")

        *frames, self._buffer = self._buffer.split(FRAME_TERMINATOR)
        return self._decode_frames(frames)

    def finish(self) -> list[DecodedItem]:
        """Flush at end of stream, treating any leftover text as a final frame."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer.replace("\r\n", "\n"), ""
        if not remainder.strip():
            return []
        logger.debug("Decoding unterminated final frame")
        return self._decode_frames([remainder])

    def _decode_frames(self, frames: list[str]) -> list[DecodedItem]:
        items: list[DecodedItem] = []
        for frame in frames:
            item = decode_frame(frame)
            if item is not None:
                items.append(item)
        return items


def decode_frame(frame: str) -> DecodedItem | None:
    """Decode one complete frame.

    Only `data:` lines are read; other SSE fields and comments are ignored.
    Returns None for frames without data (e.g. keep-alive comments).
    """
    data_lines = []
    for line in frame.split("\n"):
        if line.startswith(DATA_FIELD):
            value = line[len(DATA_FIELD):]
            data_lines.append(value[1:] if value.startswith(" ") else value)

    if not data_lines:
        return None

    payload = "\n".join(data_lines)
    try:
        return parse_event(json.loads(payload))
    except (ValueError, RecursionError, ValidationError) as e:
        logger.warning(f"Parse error in frame {payload[:80]!r}: {e}")
        return MalformedFrame(raw=payload, reason=str(e))


async def iter_events(chunks: AsyncIterable[bytes]) -> AsyncIterator[DecodedItem]:
    """Lazily turn a stream of byte chunks into events and malformed-frame notices."""
    reassembler = FrameReassembler()
    async for chunk in chunks:
        for item in reassembler.feed(chunk):
            yield item
    for item in reassembler.finish():
        yield item
