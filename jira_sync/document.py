"""Atlassian Document Format (ADF) helpers.

Outbound bodies are built as DocNode models and serialized by the JSON encoder;
inbound descriptions arrive as raw dicts and are flattened back to plain text.
"""

from collections.abc import Mapping
from typing import Any

from jira_sync.models import DocNode


def to_document(text: str) -> DocNode:
    """Wrap plain text as a single paragraph holding one text run."""
    return DocNode(
        type="doc",
        version=1,
        content=[DocNode(type="paragraph", content=[DocNode(type="text", text=text)])],
    )


def to_payload(text: str) -> dict:
    return to_document(text).model_dump(exclude_none=True)


def flatten(node: Mapping[str, Any] | DocNode | str | None) -> str:
    """Render an ADF tree as plain text.

    Text runs emit their text, hard breaks a newline, and a non-empty paragraph
    ends with a newline. Unknown node types contribute only their children.
    """
    if node is None:
        return ""
    if isinstance(node, str):  # v2-style plain text description
        return node
    if isinstance(node, DocNode):
        node = node.model_dump(exclude_none=True)

    kind = node.get("type")
    if kind == "text":
        return node.get("text") or ""
    if kind == "hardBreak":
        return "\n"

    text = "".join(flatten(child) for child in node.get("content") or [] if isinstance(child, Mapping))
    if kind == "paragraph" and text:
        text += "\n"
    return text
