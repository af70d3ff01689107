# weather_chat/models/schemas.py
import uuid
from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Literal

from weather_chat.config.settings import Settings, get_settings


class ApiMessage(BaseModel):
    """One message of the agent request."""
    role: Literal["system", "user", "assistant"]
    content: str


class AgentRequest(BaseModel):
    """Request body for the streaming agent endpoint."""
    messages: List[ApiMessage] = Field(..., min_length=1)
    run_id: str = Field(..., alias="runId")
    max_retries: int = Field(..., alias="maxRetries")
    max_steps: int = Field(..., alias="maxSteps")
    temperature: float
    top_p: float = Field(..., alias="topP")
    runtime_context: Dict[str, Any] = Field(default_factory=dict, alias="runtimeContext")
    thread_id: str = Field(..., alias="threadId")
    resource_id: str = Field(..., alias="resourceId")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "messages": [
                    {"role": "system", "content": "You are a weather-only assistant."},
                    {"role": "user", "content": "Weather in Mumbai?"}
                ],
                "runId": "weatherAgent",
                "maxRetries": 2,
                "maxSteps": 5,
                "temperature": 0.5,
                "topP": 1,
                "runtimeContext": {},
                "threadId": "22-COMPC18-26",
                "resourceId": "weatherAgent"
            }
        }

    def to_payload(self) -> Dict[str, Any]:
        """Serialize with the wire (camelCase) keys."""
        return self.model_dump(by_alias=True)


def build_agent_request(user_text: str, settings: Optional[Settings] = None) -> AgentRequest:
    """Build the fixed-shape request body for one user turn."""
    settings = settings or get_settings()
    agent = settings.agent_config
    return AgentRequest(
        messages=[
            ApiMessage(role="system", content=settings.system_prompt),
            ApiMessage(role="user", content=user_text),
        ],
        run_id=agent.run_id,
        max_retries=agent.max_retries,
        max_steps=agent.max_steps,
        temperature=agent.temperature,
        top_p=agent.top_p,
        runtime_context={},
        thread_id=settings.thread_id,
        resource_id=agent.resource_id,
    )


class ChatMessage(BaseModel):
    """A message in the local conversation history."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "assistant"]
    content: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
