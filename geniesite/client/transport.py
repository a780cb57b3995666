"""Client transport — posts a prompt and feeds the SSE response into the session.

One read loop per generation; reads are sequential, so events reach the
state machine in emission order. There is no abort signal: closing the
client simply stops further reads.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import httpx

from geniesite.client.reassembler import DecodedItem, iter_events
from geniesite.client.session import GenerationSession, SessionStateMachine

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000"
GENERATE_PATH = "/api/generate"

# Generations can stream for minutes; only the connect phase is bounded.
STREAM_TIMEOUT = httpx.Timeout(10.0, read=None)


class GenieSiteClient:
    """Streams generations from a GenieSite server into a GenerationSession.

    Usage::

        async with GenieSiteClient("http://localhost:5000") as client:
            session = await client.generate("Create a landing page")
            client.export_code("website.html")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=STREAM_TIMEOUT)
        self.machine = SessionStateMachine()

    async def __aenter__(self) -> GenieSiteClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def session(self) -> GenerationSession:
        return self.machine.session

    async def generate(
        self,
        prompt: str,
        on_item: Callable[[DecodedItem, GenerationSession], None] | None = None,
    ) -> GenerationSession:
        """Run one generation to its end and return the resulting session.

        `on_item` is called after every reassembled item has been applied,
        so a presentation layer can redraw. Transport and reader failures never
        raise; they end up as an error message in the session, which is left
        ready for a retry.
        """
        prompt = self.machine.begin(prompt)
        url = f"{self.base_url}{GENERATE_PATH}"

        try:
            async with self._http.stream(
                "POST",
                url,
                json={"prompt": prompt},
                headers={"Accept": "text/event-stream"},
            ) as response:
                response.raise_for_status()
                async for item in iter_events(response.aiter_bytes()):
                    self.machine.feed(item)
                    if on_item:
                        on_item(item, self.session)
        except httpx.HTTPError as e:
            self.machine.transport_failed(e)
            return self.session
        except Exception as e:
            logger.error(f"Generation aborted: {e}", exc_info=True)
            self.machine.transport_failed(e)
            return self.session

        self.machine.end_of_stream()
        return self.session

    def clear(self) -> None:
        self.machine.clear()

    def export_code(self, path: str | Path = "website.html") -> Path:
        """Write the last generated document to disk."""
        if not self.session.code:
            raise ValueError("No generated website to export")
        target = Path(path)
        target.write_text(self.session.code, encoding="utf-8")
        logger.info(f"Exported website to {target.resolve()}")
        return target
