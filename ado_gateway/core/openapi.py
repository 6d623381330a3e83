"""OpenAPI customization utilities.

Enriches the generated schema with:
- the API Key security scheme (``X-API-Key``), exempting health endpoints
- tags metadata
- the rate limiting responses (413, 400, 429) every operation can return

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_RATE_LIMIT_HEADERS = {
    "X-RateLimit-Limit": {"schema": {"type": "integer"}, "description": "Requests allowed per window"},
    "X-RateLimit-Remaining": {"schema": {"type": "integer"}, "description": "Requests left in the window"},
    "X-RateLimit-Reset": {"schema": {"type": "integer"}, "description": "Seconds until the window resets"},
}

_TEXT = {"text/plain": {"schema": {"type": "string"}}}

_RATE_LIMIT_RESPONSES: Dict[str, Any] = {
    "400": {"description": "Query string too long", "content": _TEXT},
    "413": {"description": "Request body too large", "content": _TEXT},
    "429": {
        "description": "Rate limit exceeded",
        "content": _TEXT,
        "headers": {
            "Retry-After": {"schema": {"type": "integer"}, "description": "Seconds to wait"},
            **_RATE_LIMIT_HEADERS,
        },
    },
}

_TAGS = [
    {"name": "SemanticKernel", "description": "AI endpoints (stricter rate limit tier)."},
    {"name": "Health", "description": "Liveness checks."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )
        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                responses = method_obj.setdefault("responses", {})
                for code, response in _RATE_LIMIT_RESPONSES.items():
                    responses.setdefault(code, response)
                if path.endswith("/health"):
                    method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
