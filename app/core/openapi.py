"""OpenAPI customization utilities.

Enriches the generated schema with:
- Tags metadata
- Header security schemes (``X-API-Key`` and the forwarded ``X-User-Id``)
- A documented 429 response on every rate-limited operation
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from app.schemas.rate_limit import RateLimitErrorResponse

TAGS_METADATA = [
    {"name": "Account", "description": "Signed-in user profile and account deletion."},
    {"name": "Pinned Items", "description": "Reference items saved to the notebook."},
    {"name": "Health", "description": "Liveness and readiness checks."},
]

_RATE_LIMITED_RESPONSE = {
    "description": "Rate limit exceeded",
    "content": {
        "application/json": {
            "schema": {"$ref": "#/components/schemas/RateLimitErrorResponse"},
        }
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security.

    - Injects header security schemes for API key and forwarded principal
    - Exempts the health endpoint by setting ``security: []``
    - Adds a 429 response to every write operation under ``/api``
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {"type": "apiKey", "in": "header", "name": "X-API-Key"},
        )
        security_schemes.setdefault(
            "UserIdHeader",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-User-Id",
                "description": "Subject id forwarded by the session layer.",
            },
        )
        schemas = components.setdefault("schemas", {})
        schemas.setdefault(
            "RateLimitErrorResponse",
            RateLimitErrorResponse.model_json_schema(ref_template="#/components/schemas/{model}"),
        )

        schema.setdefault("security", [{"ApiKeyAuth": [], "UserIdHeader": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            for method, operation in methods.items():
                if not isinstance(operation, dict):
                    continue
                if path.endswith("/health"):
                    operation["security"] = []
                elif path.startswith("/api") and method in {"put", "post", "delete"}:
                    operation.setdefault("responses", {}).setdefault("429", _RATE_LIMITED_RESPONSE)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
