"""
RAG Assistant - Assistant
==========================
Binds chat model + chat memory + retrieval augmentor behind two public
operations: ``set_system_role(role)`` and ``ask(prompt) -> str``.

Lifecycle
---------
``UNINITIALIZED`` → ``READY`` after one successful ``initialize()``.
A failed ``initialize()`` moves the instance to ``FAILED`` for good; build
a new instance instead of retrying.  ``Assistant.create()`` /
``create_assistant()`` do both phases and raise on failure, so no
half-ready instance ever reaches the caller.
``close()`` (or leaving a ``with`` block) releases the web client and the
temporary index directory and moves the instance to ``CLOSED``.

``ask`` pipeline
----------------
    1. Append the user message to memory.
    2. Augment: retrieve from every source, inject snippets into the turn.
    3. Call the chat model with memory window + augmented turn.
    4. Append the reply to memory and return it.

``ask`` never raises.  Failures are logged with their traceback and the
caller receives one of the user-safe replies from ``prompt_templates``.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from ragassist.config.prompt_templates import GENERIC_ERROR_REPLY, MODEL_UNAVAILABLE_REPLY, NOT_READY_REPLY
from ragassist.config.settings import Settings, load_settings
from ragassist.src.core.augmentor import RetrievalAugmentor
from ragassist.src.core.exceptions import ModelInvocationError, NotInitializedError
from ragassist.src.core.memory import ChatMemory
from ragassist.src.utils.logger import get_logger

logger = get_logger(__name__)


class ChatModel(Protocol):
    """The slice of a LangChain chat model the assistant relies on."""

    def invoke(self, input: list[BaseMessage]) -> BaseMessage: ...


class AssistantState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True)
class AssistantComponents:
    chat_model: ChatModel
    memory: ChatMemory
    augmentor: RetrievalAugmentor
    closers: tuple[Callable[[], None], ...] = ()

    def close(self) -> None:
        release_all(self.closers)


def release_all(closers: Iterable[Callable[[], None]]) -> None:
    """Run every cleanup callback; a failing one is logged and the rest still run."""
    for closer in closers:
        try:
            closer()
        except Exception:
            logger.exception("Cleanup step %r failed.", closer)


def _message_text(message: BaseMessage) -> str:
    """Flatten a chat-model reply to plain text (content may be a block list)."""
    content = message.content if hasattr(message, "content") else message
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type", "text") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content)


class Assistant:
    """
    RAG chat assistant.

    Parameters
    ----------
    settings
        Configuration used by ``initialize()``.  When *None*,
        ``initialize()`` loads it from the environment.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings
        self._state = AssistantState.UNINITIALIZED
        self._components: AssistantComponents | None = None
        self._system_role: str | None = None
        self._log_traffic = settings.LOG_LLM_TRAFFIC if settings is not None else False

    # ══════════════════════════════════════════════════════════════════
    #  CONSTRUCTION
    # ══════════════════════════════════════════════════════════════════

    @classmethod
    def create(cls, settings: Settings | None = None) -> Assistant:
        """
        Two-phase construction: build every component, then return a READY
        assistant.

        Raises
        ------
        ConfigurationError, ResourceNotFoundError, ParseError
            On any initialisation failure; no instance is returned.
        """
        assistant = cls(settings)
        assistant.initialize()
        return assistant


    @classmethod
    def from_components(
        cls,
        chat_model: ChatModel,
        memory: ChatMemory,
        augmentor: RetrievalAugmentor,
        log_traffic: bool = False,
        closers: tuple[Callable[[], None], ...] = (),
    ) -> Assistant:
        """Wrap already-built components in a READY assistant."""
        assistant = cls()
        assistant._log_traffic = log_traffic
        assistant._attach(AssistantComponents(chat_model=chat_model, memory=memory, augmentor=augmentor, closers=closers))
        return assistant


    def initialize(self) -> None:
        """
        Run the one-time setup (ingest, index, wire retrievers and model).

        Raises
        ------
        NotInitializedError
            If a previous attempt failed; the instance is permanently unusable.
        ConfigurationError, ResourceNotFoundError, ParseError
            Propagated from setup; the instance moves to ``FAILED``.
        """
        if self._state is AssistantState.READY:
            logger.debug("initialize() called on a READY assistant; ignoring.")
            return
        if self._state is AssistantState.FAILED:
            raise NotInitializedError("Initialisation previously failed; construct a new Assistant.")
        if self._state is AssistantState.CLOSED:
            raise NotInitializedError("Assistant was closed; construct a new Assistant.")

        from ragassist.src.core.bootstrap import build_components

        try:
            settings = self._settings or load_settings()
            self._settings = settings
            self._log_traffic = settings.LOG_LLM_TRAFFIC
            components = build_components(settings)
        except Exception:
            self._state = AssistantState.FAILED
            logger.exception("Assistant initialisation failed.")
            raise

        self._attach(components)


    def _attach(self, components: AssistantComponents) -> None:
        self._components = components
        if self._system_role is not None:
            components.memory.set_system_message(self._system_role)
        self._state = AssistantState.READY
        logger.info("Assistant ready (memory capacity=%d).", components.memory.max_messages)


    def close(self) -> None:
        """Release the web client and the temporary index.  Safe to call twice."""
        components, self._components = self._components, None
        if components is None:
            return
        components.close()
        self._state = AssistantState.CLOSED
        logger.info("Assistant closed.")

    def __enter__(self) -> Assistant:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ══════════════════════════════════════════════════════════════════
    #  STATE
    # ══════════════════════════════════════════════════════════════════

    @property
    def state(self) -> AssistantState:
        return self._state

    @property
    def memory(self) -> ChatMemory:
        return self._require_ready().memory

    @property
    def augmentor(self) -> RetrievalAugmentor:
        return self._require_ready().augmentor


    def _require_ready(self) -> AssistantComponents:
        if self._state is not AssistantState.READY or self._components is None:
            raise NotInitializedError(f"Assistant is {self._state.value}, not ready.")
        return self._components

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC OPERATIONS
    # ══════════════════════════════════════════════════════════════════

    def set_system_role(self, role: str) -> None:
        """
        Reset the conversation and pin *role* as the system message.

        Before initialisation the role is remembered and applied as soon
        as memory exists.
        """
        self._system_role = role
        if self._components is not None:
            self._components.memory.set_system_message(role)
        logger.info("System role set (%d chars).", len(role))


    def ask(self, prompt: str) -> str:
        """Answer *prompt*.  Never raises; see module docstring."""
        t_start = time.perf_counter()
        try:
            components = self._require_ready()

            user_message = HumanMessage(content=prompt)
            components.memory.append(user_message)
            history = [m for m in components.memory.window() if m is not user_message]

            messages = components.augmentor.augment(prompt, history)
            answer = self._invoke_model(components.chat_model, messages)

            components.memory.append(AIMessage(content=answer))
        except NotInitializedError:
            logger.exception("ask() called before the assistant was ready.")
            return NOT_READY_REPLY
        except ModelInvocationError:
            logger.exception("Chat model invocation failed.")
            return MODEL_UNAVAILABLE_REPLY
        except Exception:
            logger.exception("Unexpected failure while answering.")
            return GENERIC_ERROR_REPLY

        total_ms = (time.perf_counter() - t_start) * 1000
        logger.info("[ASK] Answered in %.1fms (%d chars).", total_ms, len(answer))
        return answer


    def _invoke_model(self, chat_model: ChatModel, messages: list[BaseMessage]) -> str:
        if self._log_traffic:
            for m in messages:
                logger.debug("[LLM →] %s: %s", m.type, m.content)

        t_llm = time.perf_counter()
        try:
            response = chat_model.invoke(messages)
        except Exception as exc:
            raise ModelInvocationError(f"Chat model call failed: {exc.__class__.__name__}") from exc

        answer = _message_text(response)
        llm_ms = (time.perf_counter() - t_llm) * 1000
        logger.info("[LLM] Response: %.1fms (%d chars)", llm_ms, len(answer))
        if self._log_traffic:
            logger.debug("[LLM ←] %s", answer)
        return answer


def create_assistant(settings: Settings | None = None) -> Assistant:
    """Build a READY ``Assistant`` or raise; see ``Assistant.create``."""
    return Assistant.create(settings)
