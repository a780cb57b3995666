"""Event encoder — serializes protocol events into SSE frames.

Each frame is a single ``data:`` line holding the JSON event, followed by a
blank line. Encoding never raises: an event that cannot be serialized is
replaced by an ``error`` frame so the stream stays well-formed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
FRAME_TERMINATOR = "\n\n"

SERIALIZATION_FALLBACK = {
    "type": "error",
    "error": "JSON serialization failed",
    "details": "Invalid characters in response",
}


def _to_json(event: BaseModel | dict) -> str:
    payload = event.model_dump(exclude_none=True) if isinstance(event, BaseModel) else event
    data = json.dumps(payload, ensure_ascii=False, allow_nan=False)
    # lone surrogates survive dumps but not the utf-8 write to the socket
    data.encode("utf-8")
    return data


def _frame(data: str) -> str:
    return f"{DATA_PREFIX}{data}{FRAME_TERMINATOR}"


def _try_encode(event: BaseModel | dict) -> str | None:
    try:
        return _frame(_to_json(event))
    except (TypeError, ValueError, PydanticSerializationError) as e:
        logger.error(f"JSON stringify error: {e}")
        return None


def encode_event(event: BaseModel | dict) -> str:
    """Return one SSE frame for the event."""
    return _try_encode(event) or _frame(json.dumps(SERIALIZATION_FALLBACK))


async def encode_stream(events: AsyncIterable[BaseModel]) -> AsyncIterator[str]:
    """Adapt an async stream of events to the frames a StreamingResponse writes.

    The substituted error frame is terminal: the stream ends right after it,
    so the wire never carries a second terminal event.
    """
    try:
        async for event in events:
            frame = _try_encode(event)
            if frame is None:
                yield _frame(json.dumps(SERIALIZATION_FALLBACK))
                return
            yield frame
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()
