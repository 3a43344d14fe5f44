"""Assembly of the chat message list sent to the model."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from papercontext.core.constants import CONTEXT_PREFIX, DEFAULT_SYSTEM_PROMPT
from papercontext.core.models import ChatMessage, ImagePart, TextPart


def _clean_image_urls(images: Iterable[str | None] | str | None) -> list[str]:
    if images is None:
        return []
    if isinstance(images, str):
        images = [images]
    return [image.strip() for image in images if isinstance(image, str) and image.strip()]


def build_messages(
    prompt: str,
    system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    context: str = "",
    history: Sequence[ChatMessage] | None = None,
    images: Iterable[str | None] | str | None = None,
) -> list[ChatMessage]:
    """Build ``[system, document context?, *history, user]``.

    The document context, when present, becomes a second system message
    starting with ``"Document Context:\\n"``, which is the marker the input
    cap enforcer uses to find it. With image URLs the user message is
    multipart: the prompt text followed by one high-detail image part per URL.
    """
    messages: list[ChatMessage] = [{"role": "system", "content": system_prompt}]
    if context:
        messages.append({"role": "system", "content": f"{CONTEXT_PREFIX}{context}"})
    if history:
        messages.extend(history)

    image_urls = _clean_image_urls(images)
    if image_urls:
        parts: list[TextPart | ImagePart] = [{"type": "text", "text": prompt}]
        parts.extend(
            {"type": "image_url", "image_url": {"url": url, "detail": "high"}}
            for url in image_urls
        )
        messages.append({"role": "user", "content": parts})
    else:
        messages.append({"role": "user", "content": prompt})
    return messages
