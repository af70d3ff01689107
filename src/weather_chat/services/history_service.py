# weather_chat/services/history_service.py
import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from weather_chat.models.schemas import ChatMessage

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    Ordered message history of the single conversation thread.
    Kept in memory; written to a JSON file on ``save`` when a path is set.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._messages: List[ChatMessage] = []
        if self.path is not None:
            self._messages = self._load()

    def _load(self) -> List[ChatMessage]:
        """Load persisted history; unreadable files start an empty history."""
        if not self.path.exists():
            return []
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
            messages = [ChatMessage.model_validate(item) for item in raw]
        except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable history file {self.path}: {e}")
            return []
        logger.info(f"Loaded {len(messages)} messages from {self.path}")
        return messages

    def save(self) -> None:
        """Persist the history if a path is configured."""
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump([m.model_dump(mode="json") for m in self._messages], f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.warning(f"Could not write history to {self.path}: {e}")

    def append(self, message: ChatMessage) -> ChatMessage:
        self._messages.append(message)
        logger.debug(f"Added {message.role} message {message.id}")
        return message

    def update_content(self, message_id: str, content: str) -> ChatMessage:
        """Replace the content of a message (used while a reply streams in)."""
        for message in self._messages:
            if message.id == message_id:
                message.content = content
                return message
        raise ValueError(f"Message {message_id} not found")

    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    def clear(self) -> None:
        count = len(self._messages)
        self._messages.clear()
        self.save()
        logger.info(f"Cleared {count} messages")

    def __len__(self) -> int:
        return len(self._messages)
