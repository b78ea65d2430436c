"""Recognize API description documents (OpenAPI / Swagger) before parsing."""

from __future__ import annotations

import json
import re
from typing import Optional
from urllib.parse import urlparse

API_CONTENT_TYPES = (
    "application/json",
    "application/yaml",
    "application/x-yaml",
    "text/yaml",
    "text/x-yaml",
)
API_EXTENSIONS = (".json", ".yaml", ".yml")

_DECLARATION_RE = re.compile(r"^\s*[\"']?(openapi|swagger)[\"']?\s*:", re.IGNORECASE | re.MULTILINE)
_SWAGGER_SECTIONS = ("paths:", "definitions:", "info:")


def is_openapi_content(content: str) -> bool:
    """
    Return True when ``content`` looks like an OpenAPI or Swagger document.

    JSON input must be an object with a truthy ``openapi`` or ``swagger``
    key. Other text qualifies with a line-leading ``openapi:`` or
    ``swagger:`` declaration, or when it mentions swagger together with a
    ``paths:``, ``definitions:`` or ``info:`` section. Markup never
    qualifies.
    """
    stripped = content.lstrip()
    if not stripped or stripped.startswith("<"):
        return False

    try:
        parsed = json.loads(stripped)
    except ValueError:
        pass
    else:
        return isinstance(parsed, dict) and bool(parsed.get("openapi") or parsed.get("swagger"))

    if _DECLARATION_RE.search(content):
        return True

    lowered = content.lower()
    return "swagger" in lowered and any(section in lowered for section in _SWAGGER_SECTIONS)


def looks_like_api_document(url: str, content_type: Optional[str], content: str) -> bool:
    """
    Decide whether a fetched resource should go through the API description path.

    Args:
        url: Final URL of the resource
        content_type: Declared Content-Type (may be empty)
        content: Decoded body
    """
    base_type = (content_type or "").lower().split(";")[0].strip()
    if base_type in API_CONTENT_TYPES:
        return True

    path = urlparse(url).path.lower()
    if path.endswith(API_EXTENSIONS):
        return True

    return is_openapi_content(content)
