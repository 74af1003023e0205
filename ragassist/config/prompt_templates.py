"""
RAG Assistant - Prompt Templates & User-Facing Replies
=======================================================
Centralised prompt management.  All model-facing and user-facing text
lives here so it can be reviewed independently of application logic.

Exports
-------
CONTENT_INJECTION_TEMPLATE, SNIPPET_TEMPLATE, SNIPPET_SEPARATOR,
DEFAULT_SYSTEM_ROLE, NOT_READY_REPLY, MODEL_UNAVAILABLE_REPLY,
GENERIC_ERROR_REPLY.
"""

# ══════════════════════════════════════════════════════════════════════
#  RETRIEVAL CONTEXT INJECTION
# ══════════════════════════════════════════════════════════════════════
# The user's turn is rewritten to carry the retrieved snippets.  With no
# snippets the turn is sent unchanged.

CONTENT_INJECTION_TEMPLATE: str = """{query}

Answer using the following information:
{snippets}"""

SNIPPET_TEMPLATE: str = "[{index}] Source: {source}\n{text}"

SNIPPET_SEPARATOR: str = "\n\n"


# ══════════════════════════════════════════════════════════════════════
#  SYSTEM ROLE
# ══════════════════════════════════════════════════════════════════════

DEFAULT_SYSTEM_ROLE: str = (
    "You are a helpful assistant. Answer the user's questions using the "
    "information provided with each question when it is relevant, and say "
    "so plainly when it is not sufficient."
)


# ══════════════════════════════════════════════════════════════════════
#  USER-SAFE FAILURE REPLIES
# ══════════════════════════════════════════════════════════════════════
# Returned by Assistant.ask instead of raising.  Never include exception
# text here; the cause is logged for operators.

NOT_READY_REPLY: str = "The assistant is not ready yet. Please try again in a moment."

MODEL_UNAVAILABLE_REPLY: str = "Sorry, the language model could not be reached right now. Please try again later."

GENERIC_ERROR_REPLY: str = "Sorry, something went wrong while answering your question. Please try again."
