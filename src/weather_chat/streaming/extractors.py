"""
Frame extractors that pull user-visible text out of raw stream frames.

The agent multiplexes text tokens, tool-call records and control markers on
one line-oriented channel. Each extractor recognizes one frame shape; the
registry tries them from most to least specific and the first match wins.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Mapping, Optional
import json
import logging
import re

logger = logging.getLogger(__name__)

# Single-letter control frames (step start/finish, tool results, message finish)
CONTROL_PREFIXES = "faed"
CONTROL_FRAME_RE = re.compile(rf"^[{CONTROL_PREFIXES}]:", re.IGNORECASE)

# 0:"text" tokens; escaped quotes stay inside the token
QUOTED_TOKEN_RE = re.compile(r'\d+:"((?:[^"\\]|\\.)*)"', re.DOTALL)

NUMBERED_RECORD_RE = re.compile(r"^\d+:")

METADATA_FIELDS = ("toolCallId", "toolName", "messageId", "finishReason")

MetadataPredicate = Callable[[Mapping[str, Any]], bool]


def is_protocol_metadata(record: Mapping[str, Any]) -> bool:
    """Does this JSON record look like protocol metadata rather than content?"""
    return any(name in record for name in METADATA_FIELDS)


def decode_quoted(body: str) -> str:
    """Decode the inside of a quoted token as a JSON string literal."""
    try:
        return json.loads(f'"{body}"', strict=False)
    except json.JSONDecodeError:
        return body


class FrameExtractor(ABC):
    """Abstract base class for one frame shape."""

    @abstractmethod
    def can_handle(self, raw: str) -> bool:
        """Check if this extractor recognizes the frame."""
        pass

    @abstractmethod
    def extract(self, raw: str) -> str:
        """Return the visible text carried by the frame (may be empty)."""
        pass


class ControlFrameExtractor(FrameExtractor):
    """Drops single-letter control frames such as ``d:{...}``."""

    def can_handle(self, raw: str) -> bool:
        return CONTROL_FRAME_RE.match(raw.strip()) is not None

    def extract(self, raw: str) -> str:
        logger.debug(f"Dropping control frame: {raw[:40]}")
        return ""


class QuotedTokenExtractor(FrameExtractor):
    """Concatenates every ``digits:"..."`` token on the line, in order."""

    def can_handle(self, raw: str) -> bool:
        return QUOTED_TOKEN_RE.search(raw) is not None

    def extract(self, raw: str) -> str:
        return "".join(decode_quoted(match.group(1)) for match in QUOTED_TOKEN_RE.finditer(raw))


class NumberedRecordExtractor(FrameExtractor):
    """Handles ``digits:{json}`` tool-call and data records.

    Only text trailing the record's closing bracket is visible.
    """

    def can_handle(self, raw: str) -> bool:
        return NUMBERED_RECORD_RE.match(raw.lstrip()) is not None

    def extract(self, raw: str) -> str:
        body = NUMBERED_RECORD_RE.sub("", raw.lstrip(), count=1).lstrip()
        if body.startswith("{"):
            close = body.rfind("}")
        elif body.startswith("["):
            close = body.rfind("]")
        else:
            return ""
        if close == -1:
            return ""
        return body[close + 1:].strip()


class MetadataRecordExtractor(FrameExtractor):
    """Drops bare JSON objects that carry protocol metadata."""

    def __init__(self, predicate: Optional[MetadataPredicate] = None):
        self.predicate = predicate or is_protocol_metadata

    def can_handle(self, raw: str) -> bool:
        stripped = raw.strip()
        if not (stripped.startswith("{") and stripped.endswith("}")):
            return False
        try:
            record = json.loads(stripped)
        except json.JSONDecodeError:
            return False
        return isinstance(record, dict) and self.predicate(record)

    def extract(self, raw: str) -> str:
        logger.debug("Dropping metadata record")
        return ""


class PassthroughExtractor(FrameExtractor):
    """Fallback: unrecognized frames are treated as plain text."""

    def can_handle(self, raw: str) -> bool:
        return True

    def extract(self, raw: str) -> str:
        return raw


class ExtractorRegistry:
    """Ordered registry of frame extractors."""

    def __init__(self, metadata_predicate: Optional[MetadataPredicate] = None):
        self.extractors: List[FrameExtractor] = []
        self._setup_default_extractors(metadata_predicate)

    def _setup_default_extractors(self, metadata_predicate: Optional[MetadataPredicate]):
        # Order matters - more specific shapes first
        self.register(ControlFrameExtractor())
        self.register(QuotedTokenExtractor())
        self.register(NumberedRecordExtractor())
        self.register(MetadataRecordExtractor(metadata_predicate))
        # Passthrough last (catches everything)
        self.register(PassthroughExtractor())

    def register(self, extractor: FrameExtractor, position: Optional[int] = None):
        """Register an extractor, by default just ahead of the passthrough."""
        if position is None:
            position = len(self.extractors)
            if self.extractors and isinstance(self.extractors[-1], PassthroughExtractor):
                position -= 1
        self.extractors.insert(position, extractor)

    def get_extractor(self, raw: str) -> FrameExtractor:
        for extractor in self.extractors:
            if extractor.can_handle(raw):
                return extractor
        raise ValueError(f"No extractor found for frame: {raw!r}")

    def extract(self, raw: str) -> str:
        """Extract visible text; never raises."""
        try:
            return self.get_extractor(raw).extract(raw)
        except Exception as e:
            logger.warning(f"Frame extraction failed, passing frame through: {e}")
            return raw


_default_registry = ExtractorRegistry()


def extract_text(raw: str) -> str:
    """Extract the user-visible text of one raw frame with the default registry."""
    return _default_registry.extract(raw)
