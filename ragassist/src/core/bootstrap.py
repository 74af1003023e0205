"""
RAG Assistant - Component Wiring
=================================
Builds everything an ``Assistant`` needs from one ``Settings`` object:

    1. Re-level loggers for ``settings.ENV``.
    2. Ingest every document in ``DOCUMENT_PATHS`` (fail-fast).
    3. Initialise the Gemini embedder and build one vector table per
       document in a per-process LanceDB directory.  A temporary
       directory is removed again by ``AssistantComponents.close`` (or at
       once if set-up fails part-way).
    4. Wrap each table in an ``EmbeddingStoreRetriever``; add the Tavily
       ``WebSearchRetriever``.
    5. Route all of them through a ``QueryRouter`` into a
       ``RetrievalAugmentor``.
    6. Initialise the Gemini chat model and the ``ChatMemory``.

Each phase is timed separately; the summary line at the end separates
indexing time from model set-up time.
"""

from __future__ import annotations

import tempfile
import time
from collections.abc import Callable
from pathlib import Path

from langchain_core.documents import Document
from langchain_google_genai import ChatGoogleGenerativeAI, GoogleGenerativeAIEmbeddings

from ragassist.config.settings import Settings
from ragassist.src.core.assistant import AssistantComponents, release_all
from ragassist.src.core.augmentor import RetrievalAugmentor
from ragassist.src.core.ingestor import DocumentIngestor
from ragassist.src.core.memory import ChatMemory
from ragassist.src.core.retrievers import ContentRetriever, EmbeddingStoreRetriever, WebSearchRetriever
from ragassist.src.core.router import QueryRouter
from ragassist.src.database.vector_store import Embedder, build_embedding_store, release_connection
from ragassist.src.utils.logger import get_logger, set_env_level
from ragassist.src.utils.text_utils import table_name_for

logger = get_logger(__name__)


def create_embedder(settings: Settings) -> Embedder:
    """Create the Google Gemini embedder."""
    logger.info("Initialising embedding model: %s", settings.EMBEDDING_MODEL)
    return GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GEMINI_KEY.get_secret_value())


def create_chat_model(settings: Settings) -> ChatGoogleGenerativeAI:
    """Create the Gemini chat model (no automatic retries, bounded timeout)."""
    llm = ChatGoogleGenerativeAI(
        model=settings.LLM_MODEL,
        temperature=settings.LLM_TEMPERATURE,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=settings.LLM_MAX_RETRIES,
        google_api_key=settings.GEMINI_KEY.get_secret_value(),
    )
    logger.info("LLM initialised: %s (temperature=%.1f, timeout=%.0fs)", settings.LLM_MODEL, settings.LLM_TEMPERATURE, settings.LLM_TIMEOUT_SECONDS)
    return llm


def resolve_index_dir(settings: Settings) -> tuple[Path, Callable[[], None] | None]:
    """
    Return ``LANCEDB_PATH``, or a fresh temporary directory plus the
    callback that removes it (``None`` for a configured path).
    """
    if settings.LANCEDB_PATH is not None:
        return settings.LANCEDB_PATH, None

    tmp = tempfile.TemporaryDirectory(prefix="ragassist-lancedb-", ignore_cleanup_errors=True)
    path = Path(tmp.name)

    def _remove() -> None:
        release_connection(path)
        tmp.cleanup()
        logger.info("Removed temporary index directory: %s", path)

    return path, _remove


def ingest_documents(settings: Settings) -> list[tuple[Path, list[Document]]]:
    """Ingest every configured document; raises on the first failure."""
    ingestor = DocumentIngestor(chunk_size=settings.CHUNK_SIZE, chunk_overlap=settings.CHUNK_OVERLAP)
    return [(Path(path), ingestor.ingest(path)) for path in settings.DOCUMENT_PATHS]


def build_retrievers(settings: Settings, documents: list[tuple[Path, list[Document]]], embedder: Embedder, index_dir: Path) -> list[ContentRetriever]:
    """One store-backed retriever per document, then the web retriever."""
    retrievers: list[ContentRetriever] = []
    used_names: set[str] = set()

    for path, chunks in documents:
        name = table_name_for(path)
        suffix = 2
        while name in used_names:
            name = f"{table_name_for(path)}_{suffix}"
            suffix += 1
        used_names.add(name)

        store = build_embedding_store(chunks, embedder, db_path=index_dir, table_name=name)
        retrievers.append(EmbeddingStoreRetriever(store, max_results=settings.RETRIEVER_MAX_RESULTS, min_score=settings.RETRIEVER_MIN_SCORE))

    retrievers.append(
        WebSearchRetriever(
            api_key=settings.TAVILY_KEY.get_secret_value(),
            max_results=settings.WEB_MAX_RESULTS,
            timeout=settings.WEB_TIMEOUT_SECONDS,
            url=settings.TAVILY_URL,
        )
    )
    return retrievers


def build_components(settings: Settings) -> AssistantComponents:
    """
    Run the one-time set-up described in the module docstring.

    Raises
    ------
    ResourceNotFoundError, ParseError
        If a configured document is missing or unreadable.
    Exception
        Embedding / LanceDB failures propagate unchanged.
    """
    set_env_level(settings.ENV)
    t_start = time.perf_counter()

    # ── 1. Ingest documents (timed) ────────────────────────────────────
    t_ingest = time.perf_counter()
    documents = ingest_documents(settings)
    ingest_ms = (time.perf_counter() - t_ingest) * 1000
    logger.info("Ingested %d document(s), %d chunk(s) in %.1fms", len(documents), sum(len(c) for _, c in documents), ingest_ms)

    # ── 2. Embed + index (timed) ───────────────────────────────────────
    t_index = time.perf_counter()
    embedder = create_embedder(settings)
    index_dir, remove_index = resolve_index_dir(settings)
    closers: list[Callable[[], None]] = [remove_index] if remove_index is not None else []
    logger.info("Vector tables live in: %s", index_dir)
    try:
        retrievers = build_retrievers(settings, documents, embedder, index_dir)
        closers.extend(r.close for r in retrievers if isinstance(r, WebSearchRetriever))
        index_ms = (time.perf_counter() - t_index) * 1000
        logger.info("Retrievers ready in %.1fms: %s", index_ms, ", ".join(r.name for r in retrievers))

        # ── 3. Router, augmentor, model, memory ────────────────────────
        augmentor = RetrievalAugmentor(QueryRouter(*retrievers))
        chat_model = create_chat_model(settings)
        memory = ChatMemory(max_messages=settings.MEMORY_MAX_MESSAGES)
    except Exception:
        release_all(closers)
        raise

    total_ms = (time.perf_counter() - t_start) * 1000
    logger.info("Set-up complete in %.1fms (ingest=%.1f, index=%.1f)", total_ms, ingest_ms, index_ms)
    return AssistantComponents(chat_model=chat_model, memory=memory, augmentor=augmentor, closers=tuple(closers))
