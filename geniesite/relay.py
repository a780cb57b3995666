"""Stream relay — turns the model's part stream into protocol events.

One call to relay_generation() owns one generation end-to-end. It classifies
each upstream part as reasoning or output, emits the matching events, and
always finishes with exactly one terminal event (complete or error), even
when the upstream or the sanitizer fails.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Awaitable, Callable

from geniesite.config import GeneratorConfig
from geniesite.model import open_part_stream
from geniesite.sanitizer import sanitize_document
from geniesite.schemas import (
    AnswerStart,
    Complete,
    Error,
    GenerationRequest,
    ModelPart,
    Progress,
    ProtocolEvent,
    Thoughts,
    ThoughtsStart,
)

logger = logging.getLogger(__name__)

PartSource = Callable[[str, GeneratorConfig], Awaitable[AsyncIterator[ModelPart]]]

_NEWLINES_RE = re.compile(r"[\r\n]+")


def normalize_thought(text: str) -> str:
    """Collapse line breaks so a fragment reads as one running sentence."""
    return _NEWLINES_RE.sub(" ", text).strip()


def estimate_progress(count: int, step: float, cap: float) -> float:
    """Approximate progress from the number of output parts seen so far.

    Not a ratio of real token totals; capped below 100 so only the terminal
    event reports completion.
    """
    return min(count * step, cap)


def _details(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


async def relay_generation(
    request: GenerationRequest,
    config: GeneratorConfig,
    source: PartSource = open_part_stream,
) -> AsyncIterator[ProtocolEvent]:
    """Yield the protocol events for one generation request.

    1. Open the upstream part stream
    2. Emit thoughts_start/thoughts for reasoning parts
    3. Emit answer_start/progress for output parts
    4. Sanitize the accumulated answer and emit complete, or error on failure
    """
    logger.info(f"Generating website for prompt: {request.prompt!r}")

    try:
        parts = await source(request.prompt, config)
    except Exception as e:
        logger.error(f"Error generating website: {e}", exc_info=True)
        yield Error(error="Failed to generate website", details=_details(e))
        return

    # Per-request state, never shared between requests
    thoughts: list[str] = []
    raw_answer: list[str] = []
    thoughts_started = False
    answer_started = False
    output_count = 0

    try:
        async for part in parts:
            if not isinstance(part, ModelPart):
                raise TypeError(f"Malformed upstream part: {part!r}")
            if not part.text:
                continue

            if part.is_reasoning:
                fragment = normalize_thought(part.text)
                if not fragment:
                    continue
                if not thoughts_started:
                    thoughts_started = True
                    logger.info("AI thinking process started")
                    yield ThoughtsStart()

                thoughts.append(fragment + " ")
                yield Thoughts(content=fragment + " ")

                if config.thought_delay:
                    await asyncio.sleep(config.thought_delay)
            else:
                if not answer_started:
                    answer_started = True
                    logger.info("Code generation started")
                    yield AnswerStart()

                raw_answer.append(part.text)
                output_count += 1
                yield Progress(
                    progress=estimate_progress(
                        output_count, config.progress_step, config.progress_cap
                    ),
                )

        logger.info("Cleaning generated code")
        code = sanitize_document("".join(raw_answer))
    except Exception as e:
        logger.error(f"Streaming error: {e}", exc_info=True)
        yield Error(error="Stream processing failed", details=_details(e))
        return
    finally:
        aclose = getattr(parts, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception as e:
                logger.warning(f"Closing the upstream stream failed: {e}")

    logger.info(
        f"Website generated successfully ({len(code)} chars, "
        f"{output_count} output parts)"
    )
    yield Complete(code=code, thoughts="".join(thoughts).strip())
