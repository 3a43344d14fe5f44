"""Services: document contexts, embeddings, retrieval and message capping."""

from .conversation import build_messages
from .document_context import DocumentContextCache, build_document_context
from .embedding_cache import ensure_embeddings
from .input_cap import InputCapResult, apply_model_input_token_cap

__all__ = [
    "DocumentContextCache",
    "InputCapResult",
    "apply_model_input_token_cap",
    "build_document_context",
    "build_messages",
    "ensure_embeddings",
]
