"""Tests for chat message assembly."""

from papercontext.core.constants import DEFAULT_SYSTEM_PROMPT
from papercontext.services.conversation import build_messages


def test_minimal_conversation():
    messages = build_messages("What is new here?")

    assert messages == [
        {"role": "system", "content": DEFAULT_SYSTEM_PROMPT},
        {"role": "user", "content": "What is new here?"},
    ]


def test_context_and_history_order():
    history = [
        {"role": "user", "content": "Earlier question"},
        {"role": "assistant", "content": "Earlier answer"},
    ]
    messages = build_messages("Follow up", system_prompt="sys", context="Evidence text", history=history)

    assert [m["role"] for m in messages] == ["system", "system", "user", "assistant", "user"]
    assert messages[1]["content"] == "Document Context:\nEvidence text"
    assert messages[-1]["content"] == "Follow up"


def test_images_produce_multipart_user_message():
    messages = build_messages(
        "Describe the figure",
        system_prompt="sys",
        images=[" data:image/png;base64,AAA ", "", None, "https://example.org/fig.png"],
    )

    assert messages[-1]["content"] == [
        {"type": "text", "text": "Describe the figure"},
        {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAA", "detail": "high"}},
        {"type": "image_url", "image_url": {"url": "https://example.org/fig.png", "detail": "high"}},
    ]


def test_single_image_string():
    messages = build_messages("Look", system_prompt="sys", images="https://example.org/a.png")

    assert len(messages[-1]["content"]) == 2


def test_blank_images_keep_plain_prompt():
    messages = build_messages("Plain", system_prompt="sys", images=["  "])

    assert messages[-1]["content"] == "Plain"
