import asyncio
import logging

import streamlit as st
from dotenv import load_dotenv

from weather_chat.config.settings import get_settings
from weather_chat.exceptions import InvalidQuestionError
from weather_chat.rendering import render, to_markdown
from weather_chat.services.conversation import Conversation
from weather_chat.services.history_service import HistoryStore
from weather_chat.streaming.session import StreamSession

logger = logging.getLogger(__name__)


def configure_logging(level_name: str) -> None:
    """Configure the root logger once per process."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root_logger.setLevel(level)
    logger.info("Logging initialized. Log level is set to: %s (%d)", level_name, level)


class ChatApp:
    def __init__(self):
        load_dotenv()
        self.settings = get_settings()
        configure_logging(self.settings.effective_log_level)
        self._initialize_session_state()
        self._setup_page_config()

    def _initialize_session_state(self) -> None:
        """Keep one conversation per browser session."""
        if "conversation" not in st.session_state:
            client_config = self.settings.client_config
            st.session_state["conversation"] = Conversation(
                session=StreamSession(settings=self.settings),
                history=HistoryStore(client_config.history_path),
                max_input_length=client_config.max_input_length,
            )
        if "pending_question" not in st.session_state:
            st.session_state["pending_question"] = None

    @property
    def conversation(self) -> Conversation:
        return st.session_state["conversation"]

    def _setup_page_config(self) -> None:
        st.set_page_config(page_title=self.settings.app_name, page_icon="⛅", layout="centered")

    @staticmethod
    def _run_async(coro):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(coro)
        finally:
            loop.close()

    def _display_chat_history(self) -> None:
        for message in self.conversation.messages:
            with st.chat_message(message.role):
                if message.role == "user":
                    st.markdown(message.content)
                else:
                    st.markdown(to_markdown(render(message.content)))

    def _handle_user_input(self, user_input: str) -> None:
        """Validate the question and stream the reply into a placeholder."""
        try:
            question = self.conversation.validate_question(user_input)
        except InvalidQuestionError as e:
            self.conversation.error = e.user_message
            return

        with st.chat_message("user"):
            st.markdown(question)

        with st.chat_message("assistant"):
            placeholder = st.empty()

            def on_update(message, document):
                placeholder.markdown(to_markdown(document) or "…")

            self._run_async(self.conversation.ask(question, on_update))

    def _render_error_banner(self) -> None:
        error = self.conversation.error
        if not error:
            return
        col1, col2 = st.columns([5, 1])
        with col1:
            st.error(error)
        with col2:
            if self.conversation.last_question and st.button("Retry", use_container_width=True):
                st.session_state["pending_question"] = self.conversation.last_question
                self.conversation.error = None
                st.rerun()

    def _render_sidebar_controls(self) -> None:
        with st.sidebar:
            st.header("Chat")
            st.caption(f"Thread: {self.settings.thread_id}")
            if st.button("Clear chat", use_container_width=True):
                self.conversation.clear()
                st.rerun()

    def run(self) -> None:
        st.title("⛅ Weather Chat")
        st.markdown("*Ask about the weather anywhere*")

        self._render_sidebar_controls()
        self._display_chat_history()

        pending = st.session_state.get("pending_question")
        if pending:
            st.session_state["pending_question"] = None
            self._handle_user_input(pending)

        if user_input := st.chat_input("Type a message…", max_chars=self.settings.client_config.max_input_length):
            self._handle_user_input(user_input)

        self._render_error_banner()


def main() -> None:
    """Main function to run the chat application."""
    try:
        chat_app = ChatApp()
        chat_app.run()
    except Exception as e:
        logger.exception("Application error")
        st.error(f"Application error: {str(e)}")
        st.info("Please check your configuration and try refreshing the page.")


if __name__ == "__main__":
    main()
