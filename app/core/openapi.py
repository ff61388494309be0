"""OpenAPI customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- The 429 response and ``X-RateLimit-*`` headers on rate limited operations

The admission layer is a middleware, so FastAPI cannot infer these from the
routes themselves.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from app.core.path_matcher import PathMatcher

_HTTP_METHODS = {"get", "post", "put", "patch", "delete", "head", "options"}

RATE_LIMIT_HEADERS_DOC: Dict[str, Any] = {
    "X-RateLimit-Limit": {
        "description": "Requests allowed per window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Remaining": {
        "description": "Requests left in the current window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Reset": {
        "description": "UNIX epoch seconds when the window frees capacity.",
        "schema": {"type": "integer"},
    },
}

RATE_LIMITED_RESPONSE_DOC: Dict[str, Any] = {
    "description": "Rate limit exceeded.",
    "headers": {
        "Retry-After": {
            "description": "Seconds until the window frees capacity.",
            "schema": {"type": "integer"},
        },
        **RATE_LIMIT_HEADERS_DOC,
    },
    "content": {
        "application/json": {
            "schema": {
                "type": "object",
                "required": ["error"],
                "properties": {
                    "error": {"type": "string"},
                    "message": {"type": "string"},
                },
            },
            "example": {
                "error": "Rate limit exceeded",
                "message": "Too many requests, please try again later.",
            },
        }
    },
}


def apply_openapi_customizations(
    app: FastAPI,
    matcher: PathMatcher | None = None,
    *,
    include_reset_header: bool = True,
) -> None:
    """Patch FastAPI's OpenAPI generation to document rate limiting.

    - Adds tags metadata if not present
    - For every operation whose path the matcher selects, adds a 429 response
      and documents the rate limit headers on its 2xx responses

    Args:
        app: Application whose schema is patched.
        matcher: Rate limited path selection; None when limiting is disabled.
        include_reset_header: Whether ``X-RateLimit-Reset`` is sent (and documented).
    """

    original_openapi = app.openapi

    header_docs = {
        name: doc
        for name, doc in RATE_LIMIT_HEADERS_DOC.items()
        if include_reset_header or name != "X-RateLimit-Reset"
    }
    rejected_doc = {
        **RATE_LIMITED_RESPONSE_DOC,
        "headers": {
            "Retry-After": RATE_LIMITED_RESPONSE_DOC["headers"]["Retry-After"],
            **header_docs,
        },
    }

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        # Tags metadata
        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Chat",
                "description": "Chat completions with optional web page enrichment.",
            },
            {
                "name": "Health",
                "description": "Liveness checks and rate limiter status.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        if matcher is None:
            return schema

        paths = schema.get("paths", {})
        for path, methods in paths.items():
            if not matcher.matches(path):
                continue
            for method, operation in methods.items():
                if method not in _HTTP_METHODS or not isinstance(operation, dict):
                    continue
                responses = operation.setdefault("responses", {})
                responses.setdefault("429", rejected_doc)
                for status_code, response in responses.items():
                    if str(status_code).startswith("2") and isinstance(response, dict):
                        headers = response.setdefault("headers", {})
                        for name, doc in header_docs.items():
                            headers.setdefault(name, doc)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
