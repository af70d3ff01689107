"""
Tests for HistoryStore - ordered message history with optional JSON persistence.
"""

import json

import pytest

from weather_chat.models.schemas import ChatMessage
from weather_chat.services.history_service import HistoryStore


# ============================================================================
# INTERFACE CONTRACT TESTS
# ============================================================================

class TestHistoryStoreInterface:
    """Test the public interface contract"""

    def test_has_required_methods(self):
        store = HistoryStore()

        for name in ("append", "update_content", "messages", "clear", "save"):
            assert hasattr(store, name)
            assert callable(getattr(store, name))

    def test_append_keeps_order(self):
        store = HistoryStore()
        store.append(ChatMessage(role="user", content="Mumbai"))
        store.append(ChatMessage(role="assistant", content="Sunny"))

        assert [m.role for m in store.messages()] == ["user", "assistant"]
        assert len(store) == 2

    def test_messages_returns_a_copy(self):
        store = HistoryStore()
        store.append(ChatMessage(role="user", content="Mumbai"))

        store.messages().clear()

        assert len(store) == 1

    def test_update_content(self):
        store = HistoryStore()
        reply = store.append(ChatMessage(role="assistant"))

        store.update_content(reply.id, "Mumbai")
        store.update_content(reply.id, "Mumbai Now: 28C")

        assert store.messages()[0].content == "Mumbai Now: 28C"

    def test_update_unknown_message(self):
        with pytest.raises(ValueError, match="not found"):
            HistoryStore().update_content("missing", "x")


# ============================================================================
# PERSISTENCE
# ============================================================================

class TestHistoryPersistence:

    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "history" / "chat.json"
        store = HistoryStore(path)
        store.append(ChatMessage(role="user", content="Weather in Delhi?"))
        store.append(ChatMessage(role="assistant", content="Delhi — Tomorrow:\n- Temperature: 32C"))
        store.save()

        reloaded = HistoryStore(path)

        assert [m.content for m in reloaded.messages()] == [m.content for m in store.messages()]
        assert [m.id for m in reloaded.messages()] == [m.id for m in store.messages()]

    def test_missing_file_starts_empty(self, tmp_path):
        assert len(HistoryStore(tmp_path / "nope.json")) == 0

    @pytest.mark.parametrize("content", ["{not json", json.dumps({"role": "user"}), json.dumps([{"role": "robot"}])])
    def test_unreadable_file_starts_empty(self, tmp_path, content):
        path = tmp_path / "chat.json"
        path.write_text(content, encoding="utf-8")

        assert len(HistoryStore(path)) == 0

    def test_clear_persists(self, tmp_path):
        path = tmp_path / "chat.json"
        store = HistoryStore(path)
        store.append(ChatMessage(role="user", content="Goa"))
        store.save()

        store.clear()

        assert json.loads(path.read_text(encoding="utf-8")) == []

    def test_save_without_path_is_a_no_op(self):
        store = HistoryStore()
        store.append(ChatMessage(role="user", content="Goa"))
        store.save()
        assert store.path is None
