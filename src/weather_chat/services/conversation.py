# weather_chat/services/conversation.py
import logging
import re
from typing import Callable, List, Optional

from weather_chat.exceptions import ErrorKind, InvalidQuestionError
from weather_chat.models.schemas import ChatMessage
from weather_chat.rendering import StructuredDocument, render
from weather_chat.services.history_service import HistoryStore
from weather_chat.streaming.session import StreamSession

logger = logging.getLogger(__name__)

_PLACE_WORD = r"[A-Za-zÀ-ÿ'().-]{2,}"
LOCATION_HINT_RE = re.compile(rf"\b(in|at|for|city)\s+{_PLACE_WORD}", re.IGNORECASE)
BARE_LOCATION_RE = re.compile(rf"^{_PLACE_WORD}(?:\s+{_PLACE_WORD}){{0,2}}$", re.IGNORECASE)

MISSING_LOCATION_MESSAGE = (
    'Please ask a weather question with a location (e.g., "Weather in London?" or just "Mumbai").'
)

UpdateCallback = Callable[[ChatMessage, StructuredDocument], None]


def has_location(text: str) -> bool:
    """Heuristic: does the question name a place?"""
    if LOCATION_HINT_RE.search(text) or BARE_LOCATION_RE.match(text):
        return True
    # "Mumbai now, Delhi tomorrow"
    segments = [segment.strip() for segment in text.split(",")]
    return any(LOCATION_HINT_RE.search(s) or BARE_LOCATION_RE.match(s) for s in segments)


class MessageBuffer:
    """Cumulative text of one assistant turn; only ever appended to."""

    def __init__(self):
        self._parts: List[str] = []
        self._text = ""

    def append(self, fragment: str) -> str:
        if fragment:
            self._parts.append(fragment)
            self._text += fragment
        return self._text

    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._parts)


class Conversation:
    """Chat surface logic: validation, history, streaming into one reply."""

    def __init__(self, session: StreamSession, history: Optional[HistoryStore] = None, max_input_length: int = 1000):
        self.session = session
        self.history = history if history is not None else HistoryStore()
        self.max_input_length = max_input_length
        self.error: Optional[str] = None
        self.last_question: Optional[str] = None

    @property
    def messages(self) -> List[ChatMessage]:
        return self.history.messages()

    @property
    def is_streaming(self) -> bool:
        return self.session.active

    def validate_question(self, text: str) -> str:
        """Return the trimmed question or raise InvalidQuestionError."""
        text = (text or "").strip()
        if not text:
            raise InvalidQuestionError("Please enter a question.")
        if len(text) > self.max_input_length:
            raise InvalidQuestionError(f"Questions are limited to {self.max_input_length} characters.")
        if not has_location(text):
            raise InvalidQuestionError(MISSING_LOCATION_MESSAGE)
        return text

    async def ask(self, text: str, on_update: Optional[UpdateCallback] = None) -> ChatMessage:
        """Stream the answer to one question into a new assistant message."""
        try:
            question = self.validate_question(text)
        except InvalidQuestionError as e:
            self.error = e.user_message
            raise

        self.error = None
        self.last_question = question
        self.history.append(ChatMessage(role="user", content=question))
        reply = self.history.append(ChatMessage(role="assistant", content=""))
        buffer = MessageBuffer()

        def on_fragment(fragment: str):
            self.history.update_content(reply.id, buffer.append(fragment))
            if on_update:
                on_update(reply, render(buffer.text))

        try:
            outcome = await self.session.send(question, on_fragment)
        finally:
            self.history.save()

        if outcome is not None and outcome.kind is not ErrorKind.CANCELLED:
            self.error = outcome.user_message
        logger.info(f"Turn finished: {len(buffer)} fragments, {len(buffer.text)} characters")
        if on_update:
            on_update(reply, render(buffer.text))
        return reply

    async def retry(self, on_update: Optional[UpdateCallback] = None) -> Optional[ChatMessage]:
        """Resubmit the last question after a failed turn."""
        if self.last_question is None:
            return None
        return await self.ask(self.last_question, on_update)

    def cancel(self) -> None:
        self.session.cancel()

    def clear(self) -> None:
        """Cancel any stream and forget the conversation."""
        self.session.cancel()
        self.history.clear()
        self.error = None
