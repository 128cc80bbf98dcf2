"""Rich text content utilities.

Task content and comments are stored as editor JSON documents
(``{"type": "doc", "content": [...]}``).
"""

from typing import Any


def text_to_document(text: str) -> dict[str, Any]:
    """Wrap plain text in a single-paragraph document, one paragraph per line."""
    paragraphs = []
    for line in text.splitlines() or [""]:
        paragraph: dict[str, Any] = {"type": "paragraph"}
        if line:
            paragraph["content"] = [{"type": "text", "text": line}]
        paragraphs.append(paragraph)
    return {"type": "doc", "content": paragraphs}


def coerce_document(content: dict | str | None) -> dict | None:
    """Accept either a document or a plain string and return a document."""
    if content is None or isinstance(content, dict):
        return content
    return text_to_document(content)


def extract_plain_text(content: dict | None) -> str:
    """Extract plain text from document content for search and previews.

    Args:
        content: document JSON content (can be None)

    Returns:
        Plain text extracted from the content, or empty string if None
    """
    if content is None:
        return ""

    def _extract_text(node: dict) -> str:
        text = ""
        if "text" in node:
            text += node["text"] + " "
        for child in node.get("content") or []:
            if isinstance(child, dict):
                text += _extract_text(child)
        return text

    return _extract_text(content).strip()


def is_empty(content: dict | None) -> bool:
    return not extract_plain_text(content)
