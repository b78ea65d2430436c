"""Parsing, validation and reference resolution for API description documents."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Mapping
from typing import Any

import yaml
from jsonschema.exceptions import ValidationError as SchemaValidationError
from openapi_spec_validator import validate

from ..errors import ParseError

logger = logging.getLogger(__name__)

# Keys picked up by the last-resort line scan
_SCAN_KEYS = {
    "openapi": ("openapi",),
    "swagger": ("swagger",),
    "title": ("info", "title"),
    "version": ("info", "version"),
}


def _scan_lines(content: str) -> dict[str, Any]:
    spec: dict[str, Any] = {}
    for line in content.splitlines():
        key, sep, value = line.strip().partition(":")
        if not sep or key not in _SCAN_KEYS:
            continue
        value = value.strip().replace('"', "").replace("'", "")
        path = _SCAN_KEYS[key]
        if len(path) == 1:
            spec[path[0]] = value
        else:
            spec.setdefault(path[0], {})[path[1]] = value
    return spec


def parse_spec(content: str) -> dict[str, Any]:
    """
    Parse an API description as JSON, then YAML, then by scanning lines.

    Args:
        content: Document text

    Returns:
        Parsed document as a dictionary

    Raises:
        ParseError: If no strategy produces a usable mapping
    """
    try:
        parsed = json.loads(content)
        if isinstance(parsed, dict):
            return parsed
    except ValueError:
        logger.debug("API document is not JSON, trying YAML")

    try:
        parsed = yaml.safe_load(content)
        if isinstance(parsed, dict):
            return parsed
    except yaml.YAMLError as e:
        logger.debug(f"API document is not YAML ({e}), scanning lines")

    scanned = _scan_lines(content)
    if scanned:
        logger.warning("API document parsed by line scan only; details are limited")
        return scanned

    raise ParseError("Content is not a parseable JSON or YAML API description")


def structural_errors(spec: Mapping[str, Any]) -> list[str]:
    """Minimal checks used when the schema validator cannot run."""
    errors = []
    if not spec.get("openapi") and not spec.get("swagger"):
        errors.append("Missing openapi or swagger version declaration")
    info = spec.get("info")
    info = info if isinstance(info, Mapping) else {}
    if not info.get("title"):
        errors.append("Missing API title")
    if not info.get("version"):
        errors.append("Missing API version")
    return errors


def validate_spec(spec: Mapping[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate a parsed document against the OpenAPI/Swagger schemas.

    A schema violation makes the document invalid. If the validator cannot
    process the document at all (unknown version, unresolvable reference),
    the structural checks decide instead.

    Returns:
        (is_valid, error messages)
    """
    try:
        validate(spec)
    except SchemaValidationError as e:
        return False, [e.message]
    except Exception as e:
        logger.debug(f"Schema validator unavailable for this document ({e}), using structural checks")
        errors = structural_errors(spec)
        return not errors, errors
    return True, []


class _UnresolvableReference(Exception):
    pass


def _resolve_pointer(document: Any, pointer: str) -> Any:
    node = document
    parts = pointer.strip("/").split("/") if pointer.strip("/") else []
    for raw in parts:
        part = raw.replace("~1", "/").replace("~0", "~")
        if isinstance(node, Mapping) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            raise _UnresolvableReference(f"#{pointer}")
    return node


def dereference(spec: dict[str, Any]) -> dict[str, Any]:
    """
    Inline every internal ``#/...`` reference.

    Circular references are left as ``$ref`` objects at the point where the
    cycle closes. External references are left untouched.

    Raises:
        ValueError: If an internal reference points at nothing
    """
    resolved: dict[str, Any] = {}

    def walk(node: Any, stack: tuple[str, ...]) -> Any:
        if isinstance(node, Mapping):
            ref = node.get("$ref")
            if isinstance(ref, str) and ref.startswith("#"):
                if ref in stack:
                    return dict(node)
                if ref not in resolved:
                    try:
                        target = _resolve_pointer(spec, ref[1:])
                    except _UnresolvableReference as e:
                        raise ValueError(f"Unresolvable reference {e}") from e
                    resolved[ref] = walk(target, stack + (ref,))
                return resolved[ref]
            return {key: walk(value, stack) for key, value in node.items()}
        if isinstance(node, list):
            return [walk(item, stack) for item in node]
        return node

    return walk(copy.deepcopy(spec), ())
