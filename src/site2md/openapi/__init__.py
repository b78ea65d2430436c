"""OpenAPI / Swagger document handling for site2md."""

from .detection import is_openapi_content, looks_like_api_document
from .formatter import format_spec, summarize_spec
from .parser import dereference, parse_spec, validate_spec
from .processor import OpenApiDocument, OpenApiProcessor

__all__ = [
    "OpenApiDocument",
    "OpenApiProcessor",
    "dereference",
    "format_spec",
    "is_openapi_content",
    "looks_like_api_document",
    "parse_spec",
    "summarize_spec",
    "validate_spec",
]
