"""
Unit tests for Assistant.

Components are wired by hand (from_components) so no network or index is
needed; initialisation paths patch the settings loader.
Dependencies: pytest, langchain_core, unittest.mock, tests.fakes
"""

from unittest.mock import patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from ragassist.config.prompt_templates import GENERIC_ERROR_REPLY, MODEL_UNAVAILABLE_REPLY, NOT_READY_REPLY
from ragassist.src.core.assistant import Assistant, AssistantComponents, AssistantState, create_assistant
from ragassist.src.core.augmentor import RetrievalAugmentor
from ragassist.src.core.exceptions import ConfigurationError, NotInitializedError, ResourceNotFoundError
from ragassist.src.core.memory import ChatMemory
from ragassist.src.core.models import RetrievedSnippet
from ragassist.src.core.router import QueryRouter
from tests.fakes import FailingRetriever, FakeChatModel, StaticRetriever


def _doc_retriever() -> StaticRetriever:
    return StaticRetriever("document:rag.pdf", [RetrievedSnippet("RAG retrieves before generating.", "rag.pdf", 0.8)])


def _assistant(chat_model: FakeChatModel, *retrievers, max_messages: int = 10) -> Assistant:
    augmentor = RetrievalAugmentor(QueryRouter(*(retrievers or (_doc_retriever(),))))
    return Assistant.from_components(chat_model, ChatMemory(max_messages=max_messages), augmentor)


class TestAsk:
    """Test suite for Assistant.ask."""

    def test_returns_model_reply(self, fake_chat_model) -> None:
        """Should return the model's text and store both turns."""
        assistant = _assistant(fake_chat_model)

        answer = assistant.ask("What is RAG?")

        assert answer == "Here is the answer."
        window = assistant.memory.window()
        assert [type(m) for m in window] == [HumanMessage, AIMessage]
        assert window[0].content == "What is RAG?"
        assert window[1].content == "Here is the answer."

    def test_memory_grows_by_two_per_turn(self, fake_chat_model) -> None:
        """Should add exactly one user and one assistant message per call."""
        assistant = _assistant(fake_chat_model)

        for expected in (2, 4, 6):
            assistant.ask("question")
            assert len(assistant.memory) == expected

    def test_model_sees_injected_snippets(self, fake_chat_model) -> None:
        """Should send the augmented user turn, not the raw prompt."""
        assistant = _assistant(fake_chat_model)

        assistant.ask("What is RAG?")

        sent = fake_chat_model.calls[0]
        assert len(sent) == 1
        assert "Source: rag.pdf" in sent[-1].content
        assert "RAG retrieves before generating." in sent[-1].content

    def test_memory_keeps_raw_prompt(self, fake_chat_model) -> None:
        """Should store the user's own words, not the augmented turn."""
        assistant = _assistant(fake_chat_model)

        assistant.ask("What is RAG?")

        assert assistant.memory.window()[0].content == "What is RAG?"

    def test_history_is_sent_before_new_turn(self, fake_chat_model) -> None:
        """Should include earlier turns ahead of the augmented question."""
        assistant = _assistant(fake_chat_model)
        assistant.ask("first")

        assistant.ask("second")

        sent = fake_chat_model.calls[1]
        assert [m.content for m in sent[:2]] == ["first", "Here is the answer."]
        assert sent[2].content.startswith("second")

    def test_system_role_comes_first(self, fake_chat_model) -> None:
        """Should send the pinned system role as the first message."""
        assistant = _assistant(fake_chat_model)

        assistant.set_system_role("You are a pirate.")
        assistant.ask("hello")

        sent = fake_chat_model.calls[0]
        assert isinstance(sent[0], SystemMessage)
        assert sent[0].content == "You are a pirate."

    def test_set_system_role_resets_conversation(self, fake_chat_model) -> None:
        """Should drop earlier turns when the role changes."""
        assistant = _assistant(fake_chat_model)
        assistant.ask("old question")

        assistant.set_system_role("new role")

        assert [m.content for m in assistant.memory.window()] == ["new role"]

    def test_web_failure_still_answers(self, fake_chat_model) -> None:
        """Should answer from documents when web search is down."""
        assistant = _assistant(fake_chat_model, _doc_retriever(), FailingRetriever())

        answer = assistant.ask("What is RAG?")

        assert answer == "Here is the answer."
        assert "RAG retrieves before generating." in fake_chat_model.calls[0][-1].content

    def test_all_retrievers_fail_still_answers(self, fake_chat_model) -> None:
        """Should pass the bare question to the model."""
        assistant = _assistant(fake_chat_model, FailingRetriever("a"), FailingRetriever("b"))

        assert assistant.ask("plain") == "Here is the answer."
        assert fake_chat_model.calls[0][-1].content == "plain"

    def test_model_timeout_returns_safe_reply(self) -> None:
        """Should return the model-unavailable reply without leaking details."""
        model = FakeChatModel(error=TimeoutError("upstream timed out after 60s at 10.0.0.7"))
        assistant = _assistant(model)

        answer = assistant.ask("What is RAG?")

        assert answer == MODEL_UNAVAILABLE_REPLY
        assert "10.0.0.7" not in answer
        assert "timed out" not in answer

    def test_model_failure_keeps_user_turn(self) -> None:
        """Should keep the question in memory but store no reply."""
        assistant = _assistant(FakeChatModel(error=RuntimeError("boom")))

        assistant.ask("q")

        assert [type(m) for m in assistant.memory.window()] == [HumanMessage]

    def test_unexpected_failure_returns_generic_reply(self, fake_chat_model) -> None:
        """Should contain failures outside the model call too."""
        assistant = _assistant(fake_chat_model)

        with patch.object(RetrievalAugmentor, "augment", side_effect=KeyError("broken")):
            assert assistant.ask("q") == GENERIC_ERROR_REPLY

    def test_flattens_block_content(self) -> None:
        """Should join text blocks when the model returns a content list."""
        model = FakeChatModel()
        model.invoke = lambda messages: AIMessage(content=[{"type": "text", "text": "Hello "}, {"type": "text", "text": "world"}])
        assistant = _assistant(model)

        assert assistant.ask("hi") == "Hello world"

    def test_memory_capacity_is_respected(self, fake_chat_model) -> None:
        """Should never hold more than the configured number of messages."""
        assistant = _assistant(fake_chat_model, max_messages=4)
        assistant.set_system_role("role")

        for i in range(6):
            assistant.ask(f"q{i}")

        window = assistant.memory.window()
        assert len(window) == 4
        assert window[0].content == "role"
        assert window[-1].content == "Here is the answer."


class TestLifecycle:
    """Test suite for Assistant initialisation states."""

    def test_uninitialized_ask_returns_not_ready(self) -> None:
        """Should refuse politely before initialisation."""
        assistant = Assistant()

        assert assistant.state is AssistantState.UNINITIALIZED
        assert assistant.ask("hello") == NOT_READY_REPLY

    def test_memory_requires_ready(self) -> None:
        """Should raise NotInitializedError when accessing components early."""
        with pytest.raises(NotInitializedError):
            _ = Assistant().memory

    def test_from_components_is_ready(self, fake_chat_model) -> None:
        """Should be usable immediately."""
        assert _assistant(fake_chat_model).state is AssistantState.READY

    def test_missing_key_fails_create(self) -> None:
        """Should raise ConfigurationError instead of returning an instance."""
        error = ConfigurationError("Invalid or missing configuration: GEMINI_KEY")
        with patch("ragassist.src.core.assistant.load_settings", side_effect=error):
            with pytest.raises(ConfigurationError):
                create_assistant()

    def test_failed_initialisation_is_permanent(self, make_settings, tmp_path) -> None:
        """Should move to FAILED and refuse further use."""
        assistant = Assistant(make_settings(DOCUMENT_PATHS=[tmp_path / "missing.pdf"]))

        with pytest.raises(ResourceNotFoundError):
            assistant.initialize()

        assert assistant.state is AssistantState.FAILED
        assert assistant.ask("hello") == NOT_READY_REPLY
        with pytest.raises(NotInitializedError):
            assistant.initialize()

    def test_role_set_before_init_is_applied(self, fake_chat_model, make_settings) -> None:
        """Should pin a role chosen before the components exist."""
        assistant = Assistant(make_settings())
        assistant.set_system_role("early role")

        components = AssistantComponents(
            chat_model=fake_chat_model,
            memory=ChatMemory(),
            augmentor=RetrievalAugmentor(QueryRouter(_doc_retriever())),
        )
        with patch("ragassist.src.core.bootstrap.build_components", return_value=components):
            assistant.initialize()

        assert assistant.state is AssistantState.READY
        assert assistant.memory.window()[0].content == "early role"

    def test_initialize_twice_is_noop(self, fake_chat_model) -> None:
        """Should ignore a second initialize() on a READY assistant."""
        assistant = _assistant(fake_chat_model)
        memory = assistant.memory

        assistant.initialize()

        assert assistant.memory is memory


class TestClose:
    """Test suite for releasing assistant resources."""

    @staticmethod
    def _closing_assistant(chat_model, calls: list[str], fail_first: bool = False) -> Assistant:
        def _web() -> None:
            calls.append("web")
            if fail_first:
                raise OSError("socket already gone")

        augmentor = RetrievalAugmentor(QueryRouter(_doc_retriever()))
        return Assistant.from_components(chat_model, ChatMemory(), augmentor, closers=(_web, lambda: calls.append("index")))

    def test_close_runs_cleanup_once(self, fake_chat_model) -> None:
        """Should run every cleanup step exactly once, even if closed twice."""
        calls: list[str] = []
        assistant = self._closing_assistant(fake_chat_model, calls)

        assistant.close()
        assistant.close()

        assert calls == ["web", "index"]
        assert assistant.state is AssistantState.CLOSED

    def test_closed_assistant_refuses_work(self, fake_chat_model) -> None:
        """Should answer with the not-ready reply and refuse re-initialisation."""
        assistant = self._closing_assistant(fake_chat_model, [])
        assistant.close()

        assert assistant.ask("hello") == NOT_READY_REPLY
        with pytest.raises(NotInitializedError):
            assistant.initialize()

    def test_failing_cleanup_step_does_not_stop_the_rest(self, fake_chat_model) -> None:
        """Should still remove the index when closing the web client fails."""
        calls: list[str] = []
        assistant = self._closing_assistant(fake_chat_model, calls, fail_first=True)

        assistant.close()

        assert calls == ["web", "index"]

    def test_context_manager_closes(self, fake_chat_model) -> None:
        """Should release resources when the with-block ends."""
        calls: list[str] = []

        with self._closing_assistant(fake_chat_model, calls) as assistant:
            assert assistant.ask("q") == "Here is the answer."

        assert calls == ["web", "index"]
