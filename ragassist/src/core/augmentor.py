"""
RAG Assistant - Retrieval Augmentor
====================================
Turns a user query plus chat history into the message list sent to the
chat model.

Flow:
    1. Ask the ``QueryRouter`` which retrievers to consult.
    2. Query each one; a failure becomes a failed ``RetrievalOutcome``
       and never aborts the others.
    3. Concatenate successful snippets in routing order (no dedup, no
       re-ranking) and inject them, source-tagged, into the user turn.
    4. Every retriever failing is not an error: the query goes out with
       no retrieved context.
"""

from __future__ import annotations

import time

from langchain_core.messages import BaseMessage, HumanMessage

from ragassist.config.prompt_templates import CONTENT_INJECTION_TEMPLATE, SNIPPET_SEPARATOR, SNIPPET_TEMPLATE
from ragassist.src.core.exceptions import RetrievalUnavailableError
from ragassist.src.core.models import RetrievalOutcome, RetrievedSnippet
from ragassist.src.core.router import QueryRouter
from ragassist.src.utils.logger import get_logger

logger = get_logger(__name__)


class RetrievalAugmentor:
    """
    Orchestrates routing and context injection.

    Parameters
    ----------
    router
        The ``QueryRouter`` that selects retrievers per query.
    """

    __slots__ = ("_router",)

    def __init__(self, router: QueryRouter) -> None:
        self._router = router

    @property
    def router(self) -> QueryRouter:
        return self._router


    def retrieve(self, query: str) -> list[RetrievalOutcome]:
        """Query every routed retriever and return one outcome per retriever."""
        outcomes: list[RetrievalOutcome] = []

        for retriever in self._router.route(query):
            t_start = time.perf_counter()
            try:
                snippets = retriever.retrieve(query)
            except RetrievalUnavailableError as exc:
                logger.warning("[RAG] Retriever '%s' unavailable: %s", retriever.name, exc)
                outcomes.append(RetrievalOutcome.failure(retriever.name, str(exc)))
                continue
            except Exception as exc:
                logger.exception("[RAG] Retriever '%s' failed unexpectedly.", retriever.name)
                outcomes.append(RetrievalOutcome.failure(retriever.name, exc.__class__.__name__))
                continue

            elapsed_ms = (time.perf_counter() - t_start) * 1000
            logger.info("[RAG] Retriever '%s': %d snippet(s) in %.1fms", retriever.name, len(snippets), elapsed_ms)
            outcomes.append(RetrievalOutcome.success(retriever.name, snippets))

        if outcomes and not any(o.ok for o in outcomes):
            logger.warning("[RAG] All %d retriever(s) failed; answering without retrieved context.", len(outcomes))
        return outcomes


    def augment(self, query: str, chat_history: list[BaseMessage]) -> list[BaseMessage]:
        """
        Build the model input for *query*.

        Returns
        -------
        list[BaseMessage]
            ``chat_history`` followed by a ``HumanMessage`` carrying the
            query and the injected snippets.
        """
        outcomes = self.retrieve(query)
        snippets = [snippet for outcome in outcomes if outcome.ok for snippet in outcome.snippets]
        return [*chat_history, HumanMessage(content=self.inject(query, snippets))]


    @staticmethod
    def inject(query: str, snippets: list[RetrievedSnippet]) -> str:
        """Append numbered, source-tagged *snippets* to *query*."""
        if not snippets:
            return query

        blocks = [SNIPPET_TEMPLATE.format(index=i, source=s.source, text=s.text) for i, s in enumerate(snippets, 1)]
        return CONTENT_INJECTION_TEMPLATE.format(query=query, snippets=SNIPPET_SEPARATOR.join(blocks))
