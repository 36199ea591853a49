# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""
Transport-neutral request handlers.

Each handler takes a decoded JSON body and returns `(status_code, envelope)`:

    {
      "success": bool,
      "data": ...,                                   # on success
      "error": {"message", "code", "details"?},      # on failure
      "meta": {"timestamp", "requestId", "processingTime"}
    }

Handlers never raise; a web framework only has to serialize the envelope.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Mapping, Optional

import pydantic

from newslens_core.errors import NewslensError, NotImplementedFeature, ValidationError
from newslens_core.schema import SearchFilters

if TYPE_CHECKING:
    from newslens_core.engine import NewslensEngine

logger = logging.getLogger(__name__)

Response = tuple[int, dict[str, Any]]

CLAIM_FROM_TEXT_CHARS = 200


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_envelope(
    started: float,
    *,
    data: Any = None,
    error: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    out: dict[str, Any] = {"success": error is None}
    if error is None:
        out["data"] = data
    else:
        out["error"] = error
    out["meta"] = {
        "timestamp": _utc_now_iso(),
        "requestId": uuid.uuid4().hex,
        "processingTime": int((time.perf_counter() - started) * 1000),
    }
    return out


def _error(message: str, code: str, details: Any = None) -> dict[str, Any]:
    err: dict[str, Any] = {"message": message, "code": code}
    if details is not None:
        err["details"] = details
    return err


def _invalid_body(started: float) -> Response:
    return 400, build_envelope(
        started, error=_error("Request body must be a JSON object", ValidationError.code)
    )


def _non_empty_str(body: Mapping[str, Any], key: str) -> Optional[str]:
    value = body.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


class RequestHandlers:
    def __init__(self, engine: "NewslensEngine"):
        self.engine = engine

    def _failure(self, started: float, exc: Exception, *, message: str, code: str) -> Response:
        if isinstance(exc, ValidationError):
            return 400, build_envelope(started, error=exc.to_error_dict())
        if isinstance(exc, NotImplementedFeature):
            return 501, build_envelope(started, error=exc.to_error_dict())
        logger.error("[API] %s: %s", message, exc, exc_info=not isinstance(exc, NewslensError))
        return 500, build_envelope(started, error=_error(message, code, str(exc)))

    async def fact_check(self, body: Mapping[str, Any]) -> Response:
        started = time.perf_counter()
        if body is None:
            body = {}
        if not isinstance(body, Mapping):
            return _invalid_body(started)
        claim = _non_empty_str(body, "claim")
        text = _non_empty_str(body, "text")
        article_id = _non_empty_str(body, "articleId")

        if claim is None and text is None and article_id is None:
            return 400, build_envelope(
                started, error=_error("Either claim, text, or articleId is required", ValidationError.code)
            )

        try:
            if claim is None and text is not None:
                claim = text[:CLAIM_FROM_TEXT_CHARS] + "..." if len(text) > CLAIM_FROM_TEXT_CHARS else text
            if claim is None:
                raise NotImplementedFeature("Article-based fact-checking is not implemented")

            result = await self.engine.check_claim(claim, article_id)
            return 200, build_envelope(started, data=result.model_dump(by_alias=True, mode="json"))
        except Exception as exc:
            return self._failure(started, exc, message="Failed to perform fact-check", code="FACT_CHECK_ERROR")

    async def search(self, body: Mapping[str, Any]) -> Response:
        started = time.perf_counter()
        if body is None:
            body = {}
        if not isinstance(body, Mapping):
            return _invalid_body(started)
        query = _non_empty_str(body, "query")
        if query is None:
            return 400, build_envelope(
                started, error=_error("Query is required and must be a string", ValidationError.code)
            )

        try:
            filters = SearchFilters.model_validate(body["filters"]) if body.get("filters") else None
            limit = body.get("limit")
            if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
                raise ValidationError("limit must be a positive integer", details={"limit": limit})
        except pydantic.ValidationError as exc:
            return 400, build_envelope(
                started,
                error=_error("Invalid search filters", ValidationError.code, exc.errors(include_url=False)),
            )
        except ValidationError as exc:
            return 400, build_envelope(started, error=exc.to_error_dict())

        try:
            result = await self.engine.search(query, filters, limit)
            return 200, build_envelope(started, data=result.model_dump(by_alias=True, mode="json"))
        except Exception as exc:
            return self._failure(started, exc, message="Failed to search news", code="SEARCH_ERROR")

    async def embedding(self, body: Mapping[str, Any]) -> Response:
        started = time.perf_counter()
        if body is None:
            body = {}
        if not isinstance(body, Mapping):
            return _invalid_body(started)
        text = body.get("text")
        if not isinstance(text, str) or not text:
            return 400, build_envelope(
                started, error=_error("Text is required and must be a string", ValidationError.code)
            )

        embeddings = self.engine.embeddings
        if not embeddings.is_suitable(text):
            return 400, build_envelope(
                started,
                error=_error(
                    "Text is not suitable for embedding (too short, too long, or invalid content)",
                    "INVALID_TEXT",
                ),
            )

        model = body.get("model") if isinstance(body.get("model"), str) else None
        try:
            result = await embeddings.embed_with_usage(text, model)
            return 200, build_envelope(started, data=result.model_dump(by_alias=True, mode="json"))
        except Exception as exc:
            return self._failure(started, exc, message="Failed to create embedding", code="EMBEDDING_ERROR")

    async def health(self) -> Response:
        started = time.perf_counter()
        try:
            services = await self.engine.health()
        except Exception as exc:
            return self._failure(started, exc, message="Health check failed", code="HEALTH_CHECK_ERROR")

        healthy = all(services.values())
        data = {
            "status": "healthy" if healthy else "unhealthy",
            "services": services,
            "timestamp": _utc_now_iso(),
            "uptime": round(self.engine.uptime_sec, 3),
        }
        return (200 if healthy else 503), build_envelope(started, data=data)
