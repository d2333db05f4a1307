"""Plain text to Payload Lexical rich text conversion."""

from typing import Any, Dict, List


def _text_node(text: str) -> Dict[str, Any]:
    return {
        "detail": 0,
        "format": 0,
        "mode": "normal",
        "style": "",
        "text": text,
        "type": "text",
        "version": 1,
    }


def _paragraph(children: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "children": children,
        "direction": "ltr",
        "format": "",
        "indent": 0,
        "type": "paragraph",
        "version": 1,
    }


def text_to_lexical(text: Any) -> Dict[str, Any]:
    """
    Convert plain text into a Lexical editor document.

    Each non-blank line becomes one paragraph holding a single trimmed text
    node. Empty input still yields a well-formed document with one empty
    paragraph, because Payload rejects a null rich text tree on required
    fields.

    Args:
        text: Source text; None and non-strings are accepted

    Returns:
        Lexical document as a plain dict
    """
    content = "" if text is None else str(text)
    lines = [line.strip() for line in content.splitlines()]
    paragraphs = [_paragraph([_text_node(line)]) for line in lines if line]
    if not paragraphs:
        paragraphs = [_paragraph([])]

    return {
        "root": {
            "children": paragraphs,
            "direction": "ltr",
            "format": "",
            "indent": 0,
            "type": "root",
            "version": 1,
        }
    }
