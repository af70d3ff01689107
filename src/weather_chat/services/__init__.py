from .history_service import HistoryStore
from .conversation import Conversation, MessageBuffer, has_location

__all__ = ["HistoryStore", "Conversation", "MessageBuffer", "has_location"]
