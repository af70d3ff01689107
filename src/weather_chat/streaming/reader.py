"""
Transport reader: one streaming POST to the agent, turned into text fragments.
"""
from typing import AsyncGenerator, AsyncIterable, Callable, List, Optional
import codecs
import logging

import aiohttp

from weather_chat.config.settings import Settings, get_settings
from weather_chat.exceptions import HttpStatusError, StreamProtocolError
from weather_chat.models.schemas import build_agent_request
from .extractors import extract_text

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
ESCAPED_NEWLINE = "\\n"


class LineFramer:
    """Incremental bytes-to-lines splitter.

    Partial multi-byte sequences and the trailing incomplete line are held
    back until the next ``feed``.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, data: bytes) -> List[str]:
        """Add bytes and return the lines they completed."""
        self._buffer += self._decoder.decode(data)
        *lines, self._buffer = self._buffer.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        """Return whatever is left once the byte stream is exhausted."""
        self._buffer += self._decoder.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        return [tail.rstrip("\r")] if tail else []


class StreamFinished(Exception):
    """Raised internally when the ``[DONE]`` sentinel arrives."""


def frame_to_fragment(line: str, extractor: Callable[[str], str] = extract_text) -> str:
    """Turn one complete line into a fragment ("" when it carries no text)."""
    if not line.strip():
        return ""
    payload = line[len(DATA_PREFIX):] if line.startswith(DATA_PREFIX) else line
    if payload.strip() == DONE_SENTINEL:
        raise StreamFinished()
    return extractor(payload).replace(ESCAPED_NEWLINE, "\n")


async def iter_fragments(
    chunks: AsyncIterable[bytes],
    extractor: Callable[[str], str] = extract_text,
) -> AsyncGenerator[str, None]:
    """Yield non-empty text fragments from a stream of raw byte chunks."""
    framer = LineFramer()
    count = 0
    try:
        async for chunk in chunks:
            for line in framer.feed(chunk):
                fragment = frame_to_fragment(line, extractor)
                if fragment:
                    count += 1
                    yield fragment
        for line in framer.flush():
            fragment = frame_to_fragment(line, extractor)
            if fragment:
                count += 1
                yield fragment
    except StreamFinished:
        logger.debug(f"[DONE] received after {count} fragments")
        return
    logger.debug(f"Byte stream exhausted after {count} fragments")


class AgentStreamClient:
    """Streams one agent turn over HTTP."""

    def __init__(self, settings: Optional[Settings] = None, extractor: Callable[[str], str] = extract_text):
        self.settings = settings or get_settings()
        self.extractor = extractor

    def _get_timeout(self) -> aiohttp.ClientTimeout:
        total = self.settings.client_config.request_timeout_seconds
        if total is None:
            return aiohttp.ClientTimeout()
        return aiohttp.ClientTimeout(total=total)

    async def stream(self, user_input: str) -> AsyncGenerator[str, None]:
        """POST the question and yield visible text fragments until the stream ends."""
        url = self.settings.api_endpoint
        payload = build_agent_request(user_input, self.settings).to_payload()

        logger.info(f"Opening agent stream: {url} (thread {self.settings.thread_id})")
        async with aiohttp.ClientSession(timeout=self._get_timeout()) as session:
            async with session.post(url, json=payload, headers=self.settings.get_request_headers()) as response:
                if not 200 <= response.status < 300:
                    raise HttpStatusError(response.status, response.reason, await self._read_error_body(response))
                if response.content is None:
                    raise StreamProtocolError("No response body available")

                async for fragment in iter_fragments(response.content.iter_any(), self.extractor):
                    yield fragment

    @staticmethod
    async def _read_error_body(response: aiohttp.ClientResponse) -> str:
        try:
            return (await response.text()).strip()
        except (aiohttp.ClientError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read error body: {e}")
            return ""
