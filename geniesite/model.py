"""Upstream model adapter — streams ModelParts from Anthropic via LangChain.

Extended thinking is enabled so the model's reasoning arrives as separate
"thinking" content blocks, which become reasoning parts; "text" blocks become
output parts.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage

from geniesite.errors import UpstreamError
from geniesite.schemas import ModelPart

if TYPE_CHECKING:
    from langchain_core.messages import AIMessageChunk

    from geniesite.config import GeneratorConfig

logger = logging.getLogger(__name__)


def _get_llm(config: GeneratorConfig) -> ChatAnthropic:
    """Create an Anthropic LLM instance with extended thinking enabled."""
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError("ANTHROPIC_API_KEY environment variable is not set")
    return ChatAnthropic(
        model=config.model,
        max_tokens=config.max_tokens,
        api_key=api_key,
        thinking={"type": "enabled", "budget_tokens": config.thinking_budget},
    )


def parts_from_chunk(chunk: AIMessageChunk) -> list[ModelPart]:
    """Split one streamed message chunk into reasoning and output parts.

    Anthropic content is either a plain string or a list of blocks:
    [{"type": "thinking", "thinking": "..."}, {"type": "text", "text": "..."}]
    Signature-only thinking blocks carry no text and yield empty parts.
    """
    content = chunk.content
    if isinstance(content, str):
        return [ModelPart(text=content)]
    if not isinstance(content, list):
        raise UpstreamError(f"Unexpected chunk content: {type(content).__name__}")

    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(ModelPart(text=block))
        elif isinstance(block, dict):
            kind = block.get("type")
            if kind == "thinking":
                parts.append(ModelPart(text=block.get("thinking") or "", is_reasoning=True))
            elif kind == "text":
                parts.append(ModelPart(text=block.get("text") or ""))
            # redacted_thinking / tool blocks carry nothing to show
        else:
            raise UpstreamError(f"Unexpected content block: {type(block).__name__}")
    return parts


async def open_part_stream(prompt: str, config: GeneratorConfig) -> AsyncIterator[ModelPart]:
    """Build the LLM client and start streaming parts for the prompt.

    Setup errors (e.g. a missing API key) raise here, before any part is read.
    No timeout is applied to the stream: a stalled upstream stalls the caller.
    """
    llm = _get_llm(config)
    messages = [HumanMessage(content=config.render_prompt(prompt))]
    logger.info(f"Requesting stream from {config.model}")

    async def parts() -> AsyncIterator[ModelPart]:
        async for chunk in llm.astream(messages):
            for part in parts_from_chunk(chunk):
                yield part

    return parts()
