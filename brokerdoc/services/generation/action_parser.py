"""Detect a document generation request embedded in assistant text.

The assistant is instructed to emit a fenced block such as::

    ```json
    {"action": "generate_document", "template": "...", "data": {...}}
    ```

``parse_document_request`` never raises; it returns one of three result
types so callers can tell "nothing asked" from "asked but unreadable".
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Union

from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

GENERATE_DOCUMENT_ACTION = "generate_document"

# First fenced block, with or without a json language tag
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)


@dataclass(frozen=True)
class DocumentRequest:
    template: str
    data: Dict[str, Any] = field(default_factory=dict)
    action: str = GENERATE_DOCUMENT_ACTION

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "template": self.template, "data": dict(self.data)}


@dataclass(frozen=True)
class DocumentRequestFound:
    request: DocumentRequest


@dataclass(frozen=True)
class DocumentRequestNotFound:
    pass


@dataclass(frozen=True)
class DocumentRequestMalformed:
    reason: str


ParseResult = Union[DocumentRequestFound, DocumentRequestNotFound, DocumentRequestMalformed]


def parse_document_request(text: str) -> ParseResult:
    """Scan complete assistant text for a generation request.

    Args:
        text: Full assistant response

    Returns:
        DocumentRequestFound when the first fenced block is a valid
        generate_document payload, DocumentRequestMalformed when a block is
        present but unusable, DocumentRequestNotFound otherwise
    """
    if not text:
        return DocumentRequestNotFound()

    match = _FENCED_BLOCK.search(text)
    if not match:
        return DocumentRequestNotFound()

    try:
        payload = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Fenced block is not valid JSON: {e}")
        return DocumentRequestMalformed(reason=f"invalid JSON: {e.msg}")

    if not isinstance(payload, dict):
        return DocumentRequestMalformed(reason="payload is not an object")

    if payload.get("action") != GENERATE_DOCUMENT_ACTION:
        # Some other structured content, not a request
        return DocumentRequestNotFound()

    template = payload.get("template")
    data = payload.get("data")
    if not isinstance(template, str) or not template.strip():
        return DocumentRequestMalformed(reason="missing template name")
    if not isinstance(data, dict):
        return DocumentRequestMalformed(reason="data must be an object")

    return DocumentRequestFound(request=DocumentRequest(template=template.strip(), data=data))
