"""End-to-end processing of API description documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import ValidationError
from .formatter import format_spec, summarize_spec
from .parser import dereference, parse_spec, validate_spec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenApiDocument:
    """
    A parsed, validated and summarized API description.

    Attributes:
        spec: Parsed document, with internal references inlined when possible
        formatted: Markdown summary block
        summary: One-line description
        is_valid: Whether validation passed
        errors: Validation messages, None when there are none
    """

    spec: dict[str, Any]
    formatted: str
    summary: str
    is_valid: bool
    errors: Optional[list[str]] = None

    @property
    def title(self) -> str:
        info = self.spec.get("info")
        if isinstance(info, dict) and info.get("title"):
            return str(info["title"])
        return "Unknown API"


class OpenApiProcessor:
    """
    Parses, validates, dereferences and formats OpenAPI/Swagger documents.

    Validation problems never fail processing; they are reported on the
    returned document. Only unparseable content raises.

    Example:
        processor = OpenApiProcessor()
        document = processor.process(text)
        print(document.summary)
    """

    def __init__(self, resolve_references: bool = True):
        """
        Args:
            resolve_references: Inline internal ``$ref`` targets before formatting
        """
        self._resolve_references = resolve_references

    def process(self, content: str) -> OpenApiDocument:
        """
        Turn document text into an OpenApiDocument.

        Raises:
            ParseError: If the text is neither JSON, YAML nor scannable
        """
        spec = parse_spec(content)
        is_valid, errors = validate_spec(spec)
        if not is_valid:
            logger.info(f"API description failed validation: {'; '.join(errors)}")

        if self._resolve_references:
            try:
                spec = dereference(spec)
            except (ValueError, RecursionError) as e:
                logger.warning(f"Failed to resolve references, keeping original document: {e}")

        return OpenApiDocument(
            spec=spec,
            formatted=format_spec(spec),
            summary=summarize_spec(spec),
            is_valid=is_valid,
            errors=errors or None,
        )

    def validate_strict(self, content: str) -> OpenApiDocument:
        """
        Like ``process`` but raise when validation fails.

        Raises:
            ParseError: If the text cannot be parsed
            ValidationError: If the document is invalid
        """
        document = self.process(content)
        if not document.is_valid:
            raise ValidationError("Invalid API description", document.errors)
        return document
