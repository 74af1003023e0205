"""
RAG Assistant - DocumentVectorStore
====================================
OOP wrapper around LanceDB providing a clean interface for:
  • Building one table per document from its chunks (all-or-nothing)
  • Ranked cosine-similarity search with a result cap and score floor

Design decisions:
  • **Singleton DB connection**: ``_get_connection()`` caches the
    ``lancedb.DBConnection`` per path to avoid file-lock issues.
  • **Dependency Injection**: the embedder is injected, never
    hard-coded, making the store testable with fake embedders.
  • **Batch embedding**: chunk lists are embedded in batches of
    ``_EMBED_BATCH_SIZE`` to keep request sizes bounded.
  • **Atomic build**: every embedding is computed before the table is
    written in a single ``create_table`` call; on any failure the table
    is dropped and no store object is returned.
  • **Read-only after build**: there is no insert API, so concurrent
    ``search`` calls need no locking.

Usage:
    from ragassist.src.database.vector_store import build_embedding_store
    store   = build_embedding_store(chunks, embedder, db_path="/tmp/idx")
    results = store.search("query text", k=3, min_score=0.5)
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

import lancedb
import pyarrow as pa
from langchain_core.documents import Document

from ragassist.src.core.models import RetrievedSnippet
from ragassist.src.utils.logger import get_logger
from ragassist.src.utils.text_utils import table_name_for

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
DocumentRecord = dict[str, str | int | list[float]]
SearchRow = dict[str, str | int | float | list[float]]


# ── Embedder Protocol ─────────────────────────────────────────────────

@runtime_checkable
class Embedder(Protocol):
    """Structural type for any LangChain-compatible embedding model."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    def embed_query(self, text: str) -> list[float]: ...


# ── Constants ──────────────────────────────────────────────────────────
_EMBED_BATCH_SIZE = 64
_DB_LOCK = threading.Lock()
_db_connection_cache: dict[str, lancedb.DBConnection] = {}


def _get_connection(db_path: str) -> lancedb.DBConnection:
    """
    Return a **singleton** ``lancedb.DBConnection`` for *db_path*.

    Thread-safe via ``_DB_LOCK``.  Re-uses an existing connection
    for the same path, avoiding file-lock contention when several
    document stores share the same DB directory.
    """
    if db_path not in _db_connection_cache:
        with _DB_LOCK:
            if db_path not in _db_connection_cache:
                logger.info("Opening new LanceDB connection: %s", db_path)
                Path(db_path).mkdir(parents=True, exist_ok=True)
                _db_connection_cache[db_path] = lancedb.connect(db_path)
    return _db_connection_cache[db_path]


def release_connection(db_path: str | Path) -> None:
    """Forget the cached connection for *db_path* before its directory is removed."""
    with _DB_LOCK:
        if _db_connection_cache.pop(str(db_path), None) is not None:
            logger.info("Released LanceDB connection: %s", db_path)


def _schema(dimension: int) -> pa.Schema:
    return pa.schema([
        pa.field("vector", pa.list_(pa.float32(), dimension)),
        pa.field("text", pa.utf8()),
        pa.field("source", pa.utf8()),
        pa.field("chunk_index", pa.int32()),
    ])


def _embed_all(embedder: Embedder, texts: list[str]) -> list[list[float]]:
    """Embed *texts* in batches; any batch failure aborts the whole build."""
    logger.info("Embedding %d chunks in batches of %d …", len(texts), _EMBED_BATCH_SIZE)

    all_vectors: list[list[float]] = []
    for i in range(0, len(texts), _EMBED_BATCH_SIZE):
        batch = texts[i : i + _EMBED_BATCH_SIZE]
        try:
            vectors = embedder.embed_documents(batch)
        except Exception as exc:
            logger.error("Embedding batch %d–%d failed: %s", i, i + len(batch) - 1, exc)
            raise
        if len(vectors) != len(batch):
            raise ValueError(f"Embedder returned {len(vectors)} vectors for {len(batch)} texts.")
        all_vectors.extend(vectors)
    return all_vectors


def build_embedding_store(chunks: list[Document], embedder: Embedder, db_path: str | Path, table_name: str | None = None) -> DocumentVectorStore:
    """
    Embed *chunks* and write them into a fresh LanceDB table.

    Parameters
    ----------
    chunks
        Chunks of exactly one document, in document order.
    embedder
        Any object satisfying the ``Embedder`` protocol.
    db_path
        LanceDB directory.
    table_name
        Override the table name.  Defaults to one derived from the chunks'
        ``source`` metadata.

    Returns
    -------
    DocumentVectorStore
        A fully populated, read-only store.

    Raises
    ------
    ValueError
        If *chunks* is empty or the embedder returns inconsistent vectors.
    Exception
        Whatever the embedder or LanceDB raised; nothing is left behind.
    """
    if not chunks:
        raise ValueError("Cannot build an embedding store from zero chunks.")

    source = str(chunks[0].metadata.get("source", "unknown"))
    name = table_name or table_name_for(source)
    db = _get_connection(str(db_path))

    texts = [chunk.page_content for chunk in chunks]
    vectors = _embed_all(embedder, texts)

    dimension = len(vectors[0])
    if dimension == 0 or any(len(v) != dimension for v in vectors):
        raise ValueError("Embedder returned empty or mixed-dimension vectors.")

    # ── Build records ──────────────────────────────────────────────────
    records: list[DocumentRecord] = [
        {"vector": vec, "text": chunk.page_content, "source": str(chunk.metadata.get("source", source)), "chunk_index": int(chunk.metadata.get("chunk_index", i))}
        for i, (chunk, vec) in enumerate(zip(chunks, vectors))
    ]

    try:
        data = pa.Table.from_pylist(records, schema=_schema(dimension))
        table = db.create_table(name, data=data, mode="overwrite")
    except Exception:
        logger.exception("Failed to write table '%s', discarding partial state.", name)
        _drop_quietly(db, name)
        raise

    logger.info("Built table '%s' with %d rows (dim=%d).", name, len(records), dimension)
    return DocumentVectorStore(embedder=embedder, table=table, table_name=name, source=source)


def _drop_quietly(db: lancedb.DBConnection, name: str) -> None:
    try:
        db.drop_table(name)
        logger.info("Dropped table '%s'.", name)
    except (ValueError, FileNotFoundError):
        logger.debug("Table '%s' was never created, nothing to drop.", name)


class DocumentVectorStore:
    """
    Read-only similarity index over one document's chunks.

    Instances are produced by ``build_embedding_store``; there is no way
    to add or remove rows afterwards.

    Parameters
    ----------
    embedder : Embedder
        Used to embed query strings (must be the one the table was built with).
    table
        The LanceDB table holding ``vector``, ``text``, ``source``, ``chunk_index``.
    table_name
        Name of that table (for logging / repr).
    source
        Source identifier of the indexed document.
    """

    __slots__ = ("_embedder", "_table", "_table_name", "_source", "_row_count")

    def __init__(self, embedder: Embedder, table: lancedb.table.Table, table_name: str, source: str) -> None:
        self._embedder = embedder
        self._table = table
        self._table_name = table_name
        self._source = source
        self._row_count = table.count_rows()

    @property
    def source(self) -> str:
        return self._source

    @property
    def table_name(self) -> str:
        return self._table_name

    def count(self) -> int:
        """Return the total number of rows in the table."""
        return self._row_count


    def search(self, query_text: str, k: int, min_score: float = 0.0) -> list[RetrievedSnippet]:
        """
        Cosine-similarity search with a result cap and a score floor.

        The score is ``(1 + cosine_similarity) / 2`` so it lies in 0–1.
        The table is scanned exhaustively (flat search) so the ranking is
        exact, then filtered by *min_score*, ordered by descending score
        with ties resolved by ``chunk_index``, and cut to *k*.

        Parameters
        ----------
        query_text
            Natural-language query to embed and search.
        k
            Maximum results.
        min_score
            Minimum relevance score (inclusive).

        Returns
        -------
        list[RetrievedSnippet]
        """
        if k < 1:
            return []

        try:
            query_vector = self._embedder.embed_query(query_text)
        except Exception as exc:
            logger.error("Failed to embed query: %s", exc)
            raise

        rows: list[SearchRow] = (
            self._table.search(query_vector, vector_column_name="vector")
            .distance_type("cosine")
            .limit(self._row_count)
            .to_list()
        )

        scored: list[tuple[float, int, SearchRow]] = []
        for row in rows:
            score = min(max((2.0 - float(row["_distance"])) / 2.0, 0.0), 1.0)
            if score >= min_score:
                scored.append((score, int(row["chunk_index"]), row))

        scored.sort(key=lambda item: (-item[0], item[1]))

        results = [RetrievedSnippet(text=str(row["text"]), source=str(row["source"]), score=score) for score, _, row in scored[:k]]
        logger.info("Search on '%s' returned %d/%d results (k=%d, min_score=%.2f).", self._table_name, len(results), len(scored), k, min_score)
        return results


    def __repr__(self) -> str:
        return f"DocumentVectorStore(table='{self._table_name}', source='{self._source}', rows={self._row_count})"
