"""
Integration tests for component wiring.

Real ingestion and a real LanceDB directory; the Gemini factories are
replaced with fakes and web search is forced to fail.
Dependencies: pytest, lancedb, tests.fakes
"""

import tempfile

import pytest

from ragassist.src.core import bootstrap
from ragassist.src.core.assistant import Assistant, AssistantState
from ragassist.src.core.exceptions import ParseError, ResourceNotFoundError, RetrievalUnavailableError
from ragassist.src.core.retrievers import EmbeddingStoreRetriever, WebSearchRetriever
from tests.fakes import FakeChatModel, FakeEmbedder


@pytest.fixture
def offline(monkeypatch):
    """Swap the network-bound factories for fakes; returns the chat model."""
    chat_model = FakeChatModel(reply="offline answer")
    monkeypatch.setattr(bootstrap, "create_embedder", lambda settings: FakeEmbedder())
    monkeypatch.setattr(bootstrap, "create_chat_model", lambda settings: chat_model)

    def _web_down(self, query):
        raise RetrievalUnavailableError("no network in tests", self.name)

    monkeypatch.setattr(WebSearchRetriever, "retrieve", _web_down)
    return chat_model


class TestBuildComponents:
    """Test suite for build_components."""

    def test_one_retriever_per_document_plus_web(self, make_settings, offline) -> None:
        """Should wire two document retrievers followed by the web retriever."""
        components = bootstrap.build_components(make_settings())

        retrievers = components.augmentor.router.retrievers
        assert [r.name for r in retrievers] == ["document:rag.txt", "document:RSE.txt", "web:tavily"]
        assert isinstance(retrievers[0], EmbeddingStoreRetriever)
        assert isinstance(retrievers[-1], WebSearchRetriever)

    def test_memory_capacity_from_settings(self, make_settings, offline) -> None:
        """Should size memory from MEMORY_MAX_MESSAGES."""
        components = bootstrap.build_components(make_settings(MEMORY_MAX_MESSAGES=6))

        assert components.memory.max_messages == 6

    def test_missing_document_fails_fast(self, make_settings, offline, tmp_path) -> None:
        """Should raise ResourceNotFoundError naming the source."""
        missing = tmp_path / "rag.pdf"

        with pytest.raises(ResourceNotFoundError) as exc_info:
            bootstrap.build_components(make_settings(DOCUMENT_PATHS=[missing]))

        assert exc_info.value.source == str(missing)

    def test_empty_document_fails_fast(self, make_settings, offline, tmp_path) -> None:
        """Should raise ParseError for a document with no text."""
        empty = tmp_path / "empty.txt"
        empty.write_text("   \n\n ", encoding="utf-8")

        with pytest.raises(ParseError):
            bootstrap.build_components(make_settings(DOCUMENT_PATHS=[empty]))

    def test_duplicate_table_names_are_disambiguated(self, make_settings, offline, sample_documents, tmp_path) -> None:
        """Should give two documents with the same stem distinct tables."""
        other_dir = tmp_path / "other"
        other_dir.mkdir()
        twin = other_dir / "rag.txt"
        twin.write_text("A second document that happens to share its name.", encoding="utf-8")

        components = bootstrap.build_components(make_settings(DOCUMENT_PATHS=[sample_documents[0], twin]))

        stores = [r._store for r in components.augmentor.router.retrievers[:2]]
        assert [s.table_name for s in stores] == ["doc_rag", "doc_rag_2"]


class TestCreateOffline:
    """End-to-end ask through real ingestion and indexing."""

    def test_answers_with_document_context(self, make_settings, offline) -> None:
        """Should answer from the indexed documents while web search is down."""
        assistant = Assistant.create(make_settings())

        answer = assistant.ask("What does retrieval augmented generation combine?")

        assert assistant.state is AssistantState.READY
        assert answer == "offline answer"
        sent = offline.calls[0][-1].content
        assert "Source: rag.txt" in sent
        assert "Retrieval augmented generation combines search" in sent

    def test_retrieve_reports_web_failure(self, make_settings, offline) -> None:
        """Should expose per-retriever outcomes including the failed web search."""
        assistant = Assistant.create(make_settings())

        outcomes = assistant.augmentor.retrieve("sustainability reports")

        by_name = {o.retriever: o for o in outcomes}
        assert by_name["document:RSE.txt"].ok
        assert not by_name["web:tavily"].ok
        assert "no network" in by_name["web:tavily"].error


class TestCleanup:
    """Temporary index and web client are released."""

    @pytest.fixture
    def tmp_root(self, tmp_path, monkeypatch):
        root = tmp_path / "tmp"
        root.mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(root))
        return root

    def test_close_removes_temporary_index(self, make_settings, offline, tmp_root) -> None:
        """Should delete the temporary index directory and close the web client."""
        assistant = Assistant.create(make_settings(LANCEDB_PATH=None))
        web = assistant.augmentor.router.retrievers[-1]
        assert len(list(tmp_root.glob("ragassist-lancedb-*"))) == 1

        assistant.close()

        assert list(tmp_root.glob("ragassist-lancedb-*")) == []
        assert web._client.is_closed
        assert assistant.state is AssistantState.CLOSED

    def test_configured_index_is_kept(self, make_settings, offline, tmp_path) -> None:
        """Should leave an explicitly configured LANCEDB_PATH in place."""
        settings = make_settings()
        assistant = Assistant.create(settings)

        assistant.close()

        assert settings.LANCEDB_PATH.is_dir()

    def test_failed_indexing_removes_temporary_index(self, make_settings, monkeypatch, tmp_root) -> None:
        """Should not leave a temporary directory behind when set-up fails."""
        monkeypatch.setattr(bootstrap, "create_embedder", lambda settings: FakeEmbedder(fail=True))

        with pytest.raises(RuntimeError):
            bootstrap.build_components(make_settings(LANCEDB_PATH=None))

        assert list(tmp_root.glob("ragassist-lancedb-*")) == []
