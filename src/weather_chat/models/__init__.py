# weather_chat/models/__init__.py
from .schemas import ApiMessage, AgentRequest, ChatMessage, build_agent_request

__all__ = ["ApiMessage", "AgentRequest", "ChatMessage", "build_agent_request"]
