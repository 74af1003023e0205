"""
Shared test fixtures.

Provides: deterministic embedder, scripted chat model, settings factory,
sample documents.
Dependencies: pytest, tests.fakes
"""

from pathlib import Path

import pytest

from ragassist.config.settings import Settings
from tests.fakes import FakeChatModel, FakeEmbedder


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_chat_model() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def sample_documents(tmp_path: Path) -> list[Path]:
    """Two small plain-text documents standing in for the packaged PDFs."""
    rag = tmp_path / "rag.txt"
    rag.write_text(
        "Retrieval augmented generation combines search with a language model.\n\n"
        "Documents are split into chunks and embedded into vectors.",
        encoding="utf-8",
    )
    rse = tmp_path / "RSE.txt"
    rse.write_text(
        "Corporate social responsibility covers environmental and social duties.\n\n"
        "Companies publish sustainability reports every year.",
        encoding="utf-8",
    )
    return [rag, rse]


@pytest.fixture
def make_settings(tmp_path: Path, sample_documents: list[Path]):
    """Factory for isolated settings (no .env, temp index dir)."""

    def _make(**overrides) -> Settings:
        values = {
            "GEMINI_KEY": "test-gemini-key",
            "TAVILY_KEY": "test-tavily-key",
            "DOCUMENT_PATHS": sample_documents,
            "LANCEDB_PATH": tmp_path / "lancedb",
            "_env_file": None,
        }
        values.update(overrides)
        return Settings(**values)

    return _make
