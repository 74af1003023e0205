"""
RAG Assistant - Text Utilities
===============================
Helper functions for text cleaning, normalisation, and deriving
identifiers from document filenames.

These utilities are consumed by the ``DocumentIngestor`` and the
bootstrap wiring and should remain stateless and side-effect-free.
"""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path


# ── Non-printable character pattern ────────────────────────────────────
# Matches control characters (C0/C1), except \n, \r, \t which we handle
# separately. Also catches BOM, zero-width chars, soft hyphens, etc.
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\u200b\u200c\u200d\u200e\u200f\u00ad\u2060\ufffe]")

_TABLE_NAME_RE = re.compile(r"[^a-z0-9]+")


# ── Public API ─────────────────────────────────────────────────────────

def clean_text(text: str) -> str:
    """
    Sanitise raw document text for embedding.

    Steps:
        1. Unicode NFC normalisation (canonical composition), so accented
           characters extracted from PDFs compare and embed consistently.
        2. Strip non-printable / zero-width characters and formatting
           artifacts (BOM, soft hyphens, directional marks).
        3. Collapse runs of horizontal whitespace (spaces, tabs,
           non-breaking spaces) into a single space, *preserving*
           newlines.
        4. Strip leading / trailing whitespace from every line.
        5. Collapse 3+ consecutive blank lines to 2.

    Args:
        text: Raw text extracted from a source file.

    Returns:
        Cleaned, normalised text ready for chunking.
    """
    text = unicodedata.normalize("NFC", text)
    text = _NON_PRINTABLE_RE.sub("", text)
    text = re.sub(r"[^\S\n]+", " ", text)
    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def table_name_for(path: str | Path) -> str:
    """
    Derive a vector-table name from a document filename.

    Examples::

        "rag.pdf"          → "doc_rag"
        "RSE.pdf"          → "doc_rse"
        "Annual Report.md" → "doc_annual_report"
    """
    stem = _TABLE_NAME_RE.sub("_", Path(path).stem.lower()).strip("_")
    return f"doc_{stem or 'unnamed'}"
