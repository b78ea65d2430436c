"""Markdown rendering of parsed API description documents."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "options", "head", "trace")


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _sequence(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _format_basic_info(spec: Mapping[str, Any], lines: list[str]) -> None:
    info = _mapping(spec.get("info"))
    lines.append("## API Basic Information\n")
    lines.append(f"- **API Name**: {info.get('title') or 'Unknown'}")
    lines.append(f"- **Version**: {info.get('version') or 'Unknown'}")
    if spec.get("openapi"):
        lines.append(f"- **OpenAPI Version**: {spec['openapi']}")
    elif spec.get("swagger"):
        lines.append(f"- **Swagger Version**: {spec['swagger']}")
    if info.get("description"):
        lines.append(f"- **Description**: {info['description']}")
    lines.append("")


def _format_servers(spec: Mapping[str, Any], lines: list[str]) -> None:
    servers = [_mapping(server) for server in _sequence(spec.get("servers"))]
    if servers:
        lines.append("## Servers\n")
        for index, server in enumerate(servers, start=1):
            lines.append(f"{index}. **{server.get('url', '')}**")
            if server.get("description"):
                lines.append(f"   - {server['description']}")
        lines.append("")
        return

    if not (spec.get("host") or spec.get("basePath") or spec.get("schemes")):
        return

    lines.append("## Server Information\n")
    if spec.get("host"):
        lines.append(f"- **Host**: {spec['host']}")
    if spec.get("basePath"):
        lines.append(f"- **Base Path**: {spec['basePath']}")
    for key, label in (
        ("schemes", "Supported Protocols"),
        ("consumes", "Accept Formats"),
        ("produces", "Response Formats"),
    ):
        values = _sequence(spec.get(key))
        if values:
            lines.append(f"- **{label}**: {', '.join(str(v) for v in values)}")
    lines.append("")


def _format_paths(spec: Mapping[str, Any], lines: list[str]) -> None:
    paths = _mapping(spec.get("paths"))
    if not paths:
        return

    lines.append("## API Endpoints\n")
    lines.append(f"Total of **{len(paths)}** endpoints:\n")
    for path, item in paths.items():
        methods = [key for key in _mapping(item) if str(key).lower() in HTTP_METHODS]
        if not methods:
            continue
        lines.append(f"### `{path}`")
        for method in methods:
            operation = _mapping(item[method])
            label = operation.get("summary") or operation.get("operationId") or f"{method.upper()} operation"
            lines.append(f"- **{method.upper()}**: {label}")
            if operation.get("description"):
                lines.append(f"  - {operation['description']}")
        lines.append("")


def _format_components(spec: Mapping[str, Any], lines: list[str]) -> None:
    if "components" in spec and spec["components"] is not None:
        components = _mapping(spec["components"])
        lines.append("## Components\n")
        for key, label, noun in (
            ("schemas", "Schemas", "data models"),
            ("parameters", "Parameters", "reusable parameters"),
            ("responses", "Responses", "reusable responses"),
            ("securitySchemes", "Security Schemes", "security mechanisms"),
        ):
            if components.get(key):
                lines.append(f"- **{label}**: {len(_mapping(components[key]))} {noun}")
        lines.append("")
        return

    sections = (
        ("definitions", "Definitions", "data models"),
        ("parameters", "Parameters", "reusable parameters"),
        ("responses", "Responses", "reusable responses"),
        ("securityDefinitions", "Security Definitions", "security definitions"),
    )
    if not any(spec.get(key) for key, _, _ in sections):
        return

    lines.append("## Definitions\n")
    for key, label, noun in sections:
        if spec.get(key):
            lines.append(f"- **{label}**: {len(_mapping(spec[key]))} {noun}")
    lines.append("")


def format_spec(spec: Mapping[str, Any]) -> str:
    """
    Render the document's basic information, servers, endpoints and
    reusable components as Markdown, in that fixed order.
    """
    lines: list[str] = []
    _format_basic_info(spec, lines)
    _format_servers(spec, lines)
    _format_paths(spec, lines)
    _format_components(spec, lines)
    return "\n".join(lines)


def summarize_spec(spec: Mapping[str, Any]) -> str:
    """One-line description: title, version, spec flavor and endpoint count."""
    info = _mapping(spec.get("info"))
    title = info.get("title") or "API"
    version = info.get("version") or "Unknown version"
    path_count = len(_mapping(spec.get("paths")))

    if spec.get("openapi"):
        spec_type = f"OpenAPI {spec['openapi']}"
    elif spec.get("swagger"):
        spec_type = f"Swagger {spec['swagger']}"
    else:
        spec_type = "API Spec"

    return f"{title} ({version}) - {spec_type} specification with {path_count} endpoints"
