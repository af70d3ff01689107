"""
Streaming module: agent transport, frame extraction and session control.
"""
from .extractors import (
    FrameExtractor,
    ControlFrameExtractor,
    QuotedTokenExtractor,
    NumberedRecordExtractor,
    MetadataRecordExtractor,
    PassthroughExtractor,
    ExtractorRegistry,
    extract_text,
    is_protocol_metadata,
)
from .reader import AgentStreamClient, LineFramer, iter_fragments
from .session import SessionState, StreamSession, classify_error

__all__ = [
    "FrameExtractor",
    "ControlFrameExtractor",
    "QuotedTokenExtractor",
    "NumberedRecordExtractor",
    "MetadataRecordExtractor",
    "PassthroughExtractor",
    "ExtractorRegistry",
    "extract_text",
    "is_protocol_metadata",
    "AgentStreamClient",
    "LineFramer",
    "iter_fragments",
    "SessionState",
    "StreamSession",
    "classify_error",
]
