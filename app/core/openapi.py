"""OpenAPI customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- A shared 429 response on every operation, since the rate limiter runs in
  middleware and FastAPI cannot discover it from the routes

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TOO_MANY_REQUESTS_RESPONSE = {
    "description": "Too many requests from this client",
    "content": {
        "application/json": {
            "example": {"error": "Too many requests"},
        }
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 responses."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Lab",
                "description": "Demo endpoints exercising the middleware chain.",
            },
            {
                "name": "Health",
                "description": "Liveness and readiness checks.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for methods in schema.get("paths", {}).values():
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    responses = method_obj.setdefault("responses", {})
                    responses.setdefault("429", _TOO_MANY_REQUESTS_RESPONSE)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
