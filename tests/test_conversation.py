"""
Tests for Conversation - validation, streaming into one reply, retry and clear.
"""

import asyncio

import aiohttp
import pytest

from weather_chat.exceptions import NETWORK_FAILURE_MESSAGE, HttpStatusError, InvalidQuestionError
from weather_chat.services.conversation import (
    MISSING_LOCATION_MESSAGE,
    Conversation,
    MessageBuffer,
    has_location,
)
from weather_chat.services.history_service import HistoryStore

from conftest import HOLD, MUMBAI_DELHI_REPLY


@pytest.fixture
def make_conversation(scripted_session):
    def _make(scripts, history=None, **kwargs):
        return Conversation(scripted_session(scripts), history=history, **kwargs)
    return _make


# ============================================================================
# VALIDATION
# ============================================================================

class TestLocationHints:

    @pytest.mark.parametrize("text", [
        "Weather in London?",
        "Mumbai",
        "New York City",
        "what's it like at Goa",
        "Mumbai now, Delhi tomorrow",
        "São Paulo",
    ])
    def test_accepts(self, text):
        assert has_location(text)

    @pytest.mark.parametrize("text", [
        "what should I wear if it rains tomorrow morning",
        "?",
        "tell me a joke about cats please",
    ])
    def test_rejects(self, text):
        assert not has_location(text)


class TestValidateQuestion:

    def test_trims(self, make_conversation):
        assert make_conversation({}).validate_question("  Mumbai  ") == "Mumbai"

    def test_empty(self, make_conversation):
        with pytest.raises(InvalidQuestionError):
            make_conversation({}).validate_question("   ")

    def test_too_long(self, make_conversation):
        conversation = make_conversation({}, max_input_length=10)
        with pytest.raises(InvalidQuestionError, match="10 characters"):
            conversation.validate_question("Weather in Mumbai please")

    @pytest.mark.asyncio
    async def test_ask_without_location_sets_error(self, make_conversation):
        conversation = make_conversation({})

        with pytest.raises(InvalidQuestionError):
            await conversation.ask("tell me a joke about cats please")

        assert conversation.error == MISSING_LOCATION_MESSAGE
        assert conversation.messages == []


# ============================================================================
# STREAMING A TURN
# ============================================================================

class TestAsk:

    @pytest.mark.asyncio
    async def test_reply_grows_and_renders(self, make_conversation):
        fragments = ["Mumbai — Now:\n", "- Temperature: 28C\n- Humidity: 60%\n",
                     "Delhi — Tomorrow:\n", "- Temperature: 32C"]
        conversation = make_conversation({"Mumbai now, Delhi tomorrow": fragments})
        updates = []

        reply = await conversation.ask(
            "Mumbai now, Delhi tomorrow",
            on_update=lambda message, document: updates.append((message.content, document)),
        )

        assert reply.content == MUMBAI_DELHI_REPLY
        assert [m.role for m in conversation.messages] == ["user", "assistant"]
        assert conversation.messages[1].content == MUMBAI_DELHI_REPLY
        assert [content for content, _ in updates[:-1]] == [
            "".join(fragments[:i]) for i in range(1, len(fragments) + 1)
        ]
        final_document = updates[-1][1]
        assert [s.title for s in final_document.sections] == ["Mumbai", "Delhi"]
        assert conversation.error is None
        assert conversation.is_streaming is False

    @pytest.mark.asyncio
    async def test_failure_keeps_partial_text(self, make_conversation):
        conversation = make_conversation({
            "Weather in Pune": ["Pune — Now:\n", HttpStatusError(500, "Internal Server Error", "overloaded")],
        })

        reply = await conversation.ask("Weather in Pune")

        assert reply.content == "Pune — Now:\n"
        assert "500" in conversation.error
        assert "overloaded" in conversation.error

    @pytest.mark.asyncio
    async def test_history_is_saved(self, make_conversation, tmp_path):
        path = tmp_path / "chat.json"
        conversation = make_conversation({"Goa": ["Humid"]}, history=HistoryStore(path))

        await conversation.ask("Goa")

        assert [m.content for m in HistoryStore(path).messages()] == ["Goa", "Humid"]

    @pytest.mark.asyncio
    async def test_update_callback_error_propagates(self, make_conversation, tmp_path):
        path = tmp_path / "chat.json"
        conversation = make_conversation({"Goa": ["Humid", " and warm"]}, history=HistoryStore(path))

        def on_update(message, document):
            raise RuntimeError("placeholder gone")

        with pytest.raises(RuntimeError, match="placeholder gone"):
            await conversation.ask("Goa", on_update)

        assert conversation.error is None
        assert conversation.is_streaming is False
        assert [m.content for m in HistoryStore(path).messages()] == ["Goa", "Humid"]

    @pytest.mark.asyncio
    async def test_each_turn_gets_a_fresh_buffer(self, make_conversation):
        conversation = make_conversation({"Goa": ["Humid"], "Pune": ["Dry"]})

        await conversation.ask("Goa")
        await conversation.ask("Pune")

        assert [m.content for m in conversation.messages] == ["Goa", "Humid", "Pune", "Dry"]


class TestRetryAndClear:

    @pytest.mark.asyncio
    async def test_retry_resubmits_last_question(self, make_conversation):
        conversation = make_conversation({"Goa": [aiohttp.ClientConnectionError("reset")]})

        await conversation.ask("Goa")
        assert conversation.error == NETWORK_FAILURE_MESSAGE

        conversation.session.client.scripts["Goa"] = ["Humid"]
        reply = await conversation.retry()

        assert reply.content == "Humid"
        assert conversation.error is None
        assert conversation.session.client.requests == ["Goa", "Goa"]

    @pytest.mark.asyncio
    async def test_retry_without_question(self, make_conversation):
        assert await make_conversation({}).retry() is None

    @pytest.mark.asyncio
    async def test_clear_cancels_and_forgets(self, make_conversation):
        conversation = make_conversation({"Goa": ["Hu", HOLD]})

        pending = asyncio.create_task(conversation.ask("Goa"))
        await conversation.session.client.holding.wait()
        conversation.clear()
        await pending

        assert conversation.is_streaming is False
        assert conversation.error is None
        assert conversation.messages == []


class TestMessageBuffer:

    def test_append_only(self):
        buffer = MessageBuffer()
        buffer.append("Mum")
        buffer.append("")
        assert buffer.append("bai") == "Mumbai"
        assert buffer.text == "Mumbai"
        assert len(buffer) == 2
