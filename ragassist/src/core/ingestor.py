"""
RAG Assistant - DocumentIngestor
=================================
Reads one source document, cleans it, and splits it into overlapping
text chunks ready for embedding.

Key design decisions:
    • **One document per call** – each document gets its own vector
      table, so the ingestor never mixes sources.
    • **Recursive splitting** – ``RecursiveCharacterTextSplitter`` with a
      paragraph → line → sentence → word → character hierarchy cuts the
      text into cores of ``chunk_size - chunk_overlap`` characters at most;
      boundaries prefer natural breakpoints and fall back to hard cuts.
    • **Exact overlap** – each chunk after the first is its core prefixed
      by the ``chunk_overlap`` characters that precede it, so consecutive
      chunks always share exactly that many characters.
    • **Fail-fast** – a missing file raises ``ResourceNotFoundError``; an
      unreadable or empty one raises ``ParseError``.  Both are fatal at
      startup.
    • **Extensible** – new file types can be added by extending
      ``_read_file``.

Usage:
    from ragassist.src.core.ingestor import DocumentIngestor
    ingestor = DocumentIngestor(chunk_size=300, chunk_overlap=30)
    chunks   = ingestor.ingest("ragassist/resources/rag.pdf")
"""

from __future__ import annotations

import time
from pathlib import Path

from langchain_community.document_loaders import PyPDFLoader
from langchain_core.documents import Document
from langchain_text_splitters import RecursiveCharacterTextSplitter

from ragassist.src.core.exceptions import ParseError, ResourceNotFoundError
from ragassist.src.utils.logger import get_logger
from ragassist.src.utils.text_utils import clean_text

logger = get_logger(__name__)

# File extensions the ingestor knows how to read
_SUPPORTED_EXTENSIONS = {".pdf", ".txt", ".md"}

# Paragraph → line → sentence → word → character
_SEPARATORS = ["\n\n", "\n", ". ", " ", ""]

_DEFAULT_CHUNK_SIZE = 300
_DEFAULT_CHUNK_OVERLAP = 30


class DocumentIngestor:
    """
    Load → clean → split for a single document.

    Parameters
    ----------
    chunk_size
        Maximum number of characters per chunk.
    chunk_overlap
        Number of characters shared by consecutive chunks.
    """

    def __init__(self, chunk_size: int = _DEFAULT_CHUNK_SIZE, chunk_overlap: int = _DEFAULT_CHUNK_OVERLAP) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be ≥ 1, got {chunk_size}")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError(f"chunk_overlap must be within 0–{chunk_size - 1}, got {chunk_overlap}")

        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        # Cores leave room for the overlap prefix; separators stay on the
        # piece they terminate so no core starts with ". " or a newline.
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size - chunk_overlap,
            chunk_overlap=0,
            separators=_SEPARATORS,
            keep_separator="end",
            strip_whitespace=False,
            length_function=len,
        )

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC ENTRY POINT
    # ══════════════════════════════════════════════════════════════════

    def ingest(self, source_location: str | Path) -> list[Document]:
        """
        Read, clean, and split one document.

        Returns
        -------
        list[Document]
            Chunks in document order.  Each carries ``source`` (file name)
            and ``chunk_index`` metadata.

        Raises
        ------
        ResourceNotFoundError
            If *source_location* does not point to an existing file.
        ParseError
            If the file type is unsupported, the content cannot be decoded,
            or no text is left after cleaning.
        """
        path = Path(source_location)
        if not path.is_file():
            raise ResourceNotFoundError(f"Document not found: {path}", str(path))

        t_file = time.perf_counter()
        logger.info("Processing file: %s", path.name)

        cleaned = clean_text(self._read_file(path))
        if not cleaned:
            raise ParseError(f"Document contains no extractable text: {path.name}", str(path))

        chunks = self.split(cleaned, source=path.name)

        elapsed_ms = (time.perf_counter() - t_file) * 1000
        logger.info("File '%s' → %d chunk(s) in %.1fms.", path.name, len(chunks), elapsed_ms)
        return chunks

    def split(self, text: str, source: str) -> list[Document]:
        """
        Split already-cleaned *text* into chunks tagged with *source*.

        Every chunk after the first starts with exactly ``chunk_overlap``
        characters taken from the end of the previous chunk, followed by a
        core that begins at a natural breakpoint.  No chunk is longer than
        ``chunk_size``.
        """
        if not text.strip():
            return []

        bounds = self._core_starts(text)
        ends = bounds[1:] + [len(text)]

        chunks: list[Document] = []
        for idx, (start, end) in enumerate(zip(bounds, ends)):
            begin = start - self._chunk_overlap if idx else 0
            piece = text[begin:end]
            logger.debug("  Chunk %d (%d chars): %.60s…", idx, len(piece), piece.replace("\n", " "))
            chunks.append(Document(page_content=piece, metadata={"source": source, "chunk_index": idx}))
        return chunks


    def _core_starts(self, text: str) -> list[int]:
        """
        Offsets in *text* where each chunk's core begins.

        A boundary closer than ``chunk_overlap`` to the start of the text is
        dropped (its core joins the first chunk), so every later chunk has a
        full overlap prefix to copy.
        """
        starts = [0]
        cursor = 0
        for piece in self._splitter.split_text(text):
            position = text.find(piece, cursor)
            if position < 0:
                position = cursor
            cursor = position + len(piece)
            if position > 0 and position >= self._chunk_overlap:
                starts.append(position)
        return starts

    # ══════════════════════════════════════════════════════════════════
    #  FILE READING
    # ══════════════════════════════════════════════════════════════════

    @staticmethod
    def _read_file(path: Path) -> str:
        """
        Read a file and return its text content.

        ``.pdf`` goes through LangChain's ``PyPDFLoader`` (one document per
        page, joined with blank lines).  Plain-text files are read as
        UTF-8 with a cp1252 fallback.
        """
        suffix = path.suffix.lower()
        if suffix not in _SUPPORTED_EXTENSIONS:
            raise ParseError(f"Unsupported file format: {suffix or '(none)'}", str(path))

        if suffix == ".pdf":
            try:
                pages = PyPDFLoader(str(path)).load()
            except Exception as exc:
                raise ParseError(f"Failed to parse PDF '{path.name}': {exc}", str(path)) from exc
            return "\n\n".join(page.page_content for page in pages)

        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            pass
        try:
            return path.read_text(encoding="cp1252")
        except UnicodeDecodeError as exc:
            raise ParseError(f"Cannot decode '{path.name}' as text: {exc}", str(path)) from exc
