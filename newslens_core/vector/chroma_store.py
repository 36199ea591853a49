# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""
Vector index over Chroma.

One collection (`news_articles` by default) holds one record per article:
the embedding, a flat metadata projection of the article and the article text.
The collection uses cosine distance, so `score = 1 - distance`.

Flat metadata conventions on the backend side:
- `tags` is a JSON-encoded list of strings
- absent optional strings (`author`, `imageUrl`) are stored as ""
- `publishedAt` is ISO-8601 UTC; `publishedAtTs` holds the same instant as
  epoch seconds for range filtering
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Awaitable, Mapping, Optional, Sequence, TypeVar

import chromadb

from newslens_core.errors import RetrievalError
from newslens_core.llm.base import create_batches
from newslens_core.schema import (
    Article,
    ArticleMetadata,
    IndexedRecord,
    IndexStats,
    QueryMatch,
    ensure_utc,
)
from newslens_core.utils.trace import Trace
from newslens_core.vector.filters import (
    FilterInput,
    compile_filter,
    credibility_floor,
    date_range,
    sources,
)

if TYPE_CHECKING:
    from newslens_core.config import NewslensConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

COLLECTION_METADATA = {
    "hnsw:space": "cosine",
    "description": "News articles for semantic retrieval",
}


def _message_has(exc: BaseException, *needles: str) -> bool:
    text = f"{type(exc).__name__}: {exc}".lower()
    return any(n in text for n in needles)


def _is_not_found(exc: BaseException) -> bool:
    return _message_has(exc, "does not exist", "not found", "notfound")


def _is_already_exists(exc: BaseException) -> bool:
    return _message_has(exc, "already exists", "uniqueconstraint")


def decode_tags(raw: Any) -> frozenset[str]:
    """JSON list -> set of tags; anything malformed degrades to an empty set."""
    if raw is None or raw == "":
        return frozenset()
    value = raw
    if isinstance(raw, str):
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("[VectorIndex] Malformed tags value: %r", raw[:80])
            return frozenset()
    if not isinstance(value, list):
        return frozenset()
    return frozenset(str(t) for t in value if isinstance(t, str))


def _parse_published(raw: Any) -> Optional[datetime]:
    if not raw or not isinstance(raw, str):
        return None
    value = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        return None


def metadata_to_backend(metadata: ArticleMetadata) -> dict[str, Any]:
    out: dict[str, Any] = {
        "title": metadata.title,
        "source": metadata.source,
        "url": metadata.url,
        "publishedAt": "",
        "category": metadata.category,
        "tags": json.dumps(sorted(metadata.tags)),
        "credibilityScore": float(metadata.credibility_score),
        "author": metadata.author or "",
        "summary": metadata.summary,
        "imageUrl": metadata.image_url or "",
        "language": metadata.language,
    }
    if metadata.published_at is not None:
        published = ensure_utc(metadata.published_at)
        out["publishedAt"] = published.isoformat().replace("+00:00", "Z")
        out["publishedAtTs"] = published.timestamp()
    return out


def metadata_from_backend(raw: Mapping[str, Any] | None) -> ArticleMetadata:
    raw = raw or {}
    try:
        credibility = float(raw.get("credibilityScore") or 0.0)
    except (TypeError, ValueError):
        credibility = 0.0
    return ArticleMetadata(
        title=str(raw.get("title") or ""),
        source=str(raw.get("source") or ""),
        url=str(raw.get("url") or ""),
        published_at=_parse_published(raw.get("publishedAt")),
        category=str(raw.get("category") or ""),
        tags=decode_tags(raw.get("tags")),
        credibility_score=credibility,
        author=raw.get("author") or None,
        summary=str(raw.get("summary") or ""),
        image_url=raw.get("imageUrl") or None,
        language=str(raw.get("language") or "en"),
    )


def record_from_article(article: Article, embedding: Sequence[float]) -> IndexedRecord:
    return IndexedRecord(
        id=article.id,
        embedding=list(embedding),
        metadata=ArticleMetadata.from_article(article),
        document_text=article.content or article.summary,
    )


def _first(results: Mapping[str, Any], key: str) -> list:
    """Chroma query results are nested per query embedding; we always send one."""
    outer = results.get(key)
    if outer is None or len(outer) == 0:
        return []
    inner = outer[0]
    return list(inner) if inner is not None else []


class VectorIndex:
    """
    Article vectors + metadata in a Chroma collection.

    The collection handle is resolved lazily on first use and cached; concurrent
    first calls share one resolution.
    """

    def __init__(self, config: "NewslensConfig", *, client: Any = None):
        self.config = config
        self.collection_name = config.collection_name
        self.timeout_sec = config.runtime.index.timeout_sec
        self.max_batch_size = config.runtime.index.max_batch_size
        self._client = client
        self._collection: Any = None
        self._lock = asyncio.Lock()

    async def _get_client(self) -> Any:
        if self._client is None:
            headers = {}
            if self.config.chroma_api_key:
                headers["x-chroma-token"] = self.config.chroma_api_key
            kwargs: dict[str, Any] = {
                "host": self.config.chroma_host,
                "port": self.config.chroma_port,
                "ssl": self.config.chroma_ssl,
                "headers": headers,
            }
            if self.config.chroma_tenant:
                kwargs["tenant"] = self.config.chroma_tenant
            if self.config.chroma_database:
                kwargs["database"] = self.config.chroma_database
            self._client = await chromadb.AsyncHttpClient(**kwargs)
            logger.debug("[VectorIndex] Connected to Chroma at %s", self.config.chroma_host)
        return self._client

    async def _bounded(self, call: Awaitable[T], *, operation: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_sec)
        except asyncio.TimeoutError as exc:
            logger.warning("[VectorIndex] %s timed out after %.1fs", operation, self.timeout_sec)
            raise RetrievalError(
                f"Vector index {operation} timed out after {self.timeout_sec:.1f}s",
                details={"operation": operation},
            ) from exc
        except RetrievalError:
            raise
        except Exception as exc:
            logger.warning("[VectorIndex] %s failed: %s", operation, exc)
            Trace.event("vector.error", {"operation": operation, "error": str(exc)[:200]})
            raise RetrievalError(
                f"Vector index {operation} failed: {exc}",
                details={"operation": operation},
            ) from exc

    async def _resolve_collection(self) -> Any:
        client = await self._get_client()
        try:
            collection = await asyncio.wait_for(
                client.get_collection(name=self.collection_name, embedding_function=None),
                timeout=self.timeout_sec,
            )
            logger.debug("[VectorIndex] Using existing collection %s", self.collection_name)
            return collection
        except Exception as exc:
            if not _is_not_found(exc):
                raise

        try:
            collection = await asyncio.wait_for(
                client.create_collection(
                    name=self.collection_name,
                    metadata=COLLECTION_METADATA,
                    embedding_function=None,
                ),
                timeout=self.timeout_sec,
            )
            logger.info("[VectorIndex] Created collection %s", self.collection_name)
            return collection
        except Exception as exc:
            if not _is_already_exists(exc):
                raise
            # Created by someone else between our get and create.
            logger.debug("[VectorIndex] Collection %s appeared concurrently, fetching", self.collection_name)
            return await asyncio.wait_for(
                client.get_collection(name=self.collection_name, embedding_function=None),
                timeout=self.timeout_sec,
            )

    async def ensure_collection(self) -> Any:
        if self._collection is not None:
            return self._collection
        async with self._lock:
            if self._collection is None:
                self._collection = await self._bounded(self._resolve_collection(), operation="ensure_collection")
            return self._collection

    def reset(self) -> None:
        self._collection = None

    async def upsert(self, record: IndexedRecord) -> None:
        await self.upsert_batch([record])

    async def upsert_batch(self, records: Sequence[IndexedRecord]) -> None:
        if not records:
            return
        collection = await self.ensure_collection()
        for chunk in create_batches(records, self.max_batch_size):
            await self._bounded(
                collection.upsert(
                    ids=[r.id for r in chunk],
                    embeddings=[list(r.embedding) for r in chunk],
                    metadatas=[metadata_to_backend(r.metadata) for r in chunk],
                    documents=[r.document_text for r in chunk],
                ),
                operation="upsert",
            )
        logger.debug("[VectorIndex] Upserted %d records", len(records))
        Trace.event("vector.upsert", {"count": len(records)})

    async def query(
        self,
        embedding: Sequence[float],
        top_k: int = 10,
        filter: FilterInput = None,  # noqa: A002
    ) -> list[QueryMatch]:
        """Nearest neighbours by cosine similarity, best first."""
        where = compile_filter(filter)
        collection = await self.ensure_collection()

        kwargs: dict[str, Any] = {
            "query_embeddings": [list(embedding)],
            "n_results": max(1, int(top_k)),
            "include": ["metadatas", "distances", "documents"],
        }
        if where is not None:
            kwargs["where"] = where

        results = await self._bounded(collection.query(**kwargs), operation="query")

        ids = _first(results, "ids")
        metadatas = _first(results, "metadatas")
        distances = _first(results, "distances")
        documents = _first(results, "documents")

        matches: list[QueryMatch] = []
        for i, record_id in enumerate(ids):
            raw_meta = metadatas[i] if i < len(metadatas) else None
            if raw_meta is None:
                continue
            distance = distances[i] if i < len(distances) and distances[i] is not None else 0.0
            matches.append(QueryMatch(
                id=str(record_id),
                score=1.0 - float(distance),
                metadata=metadata_from_backend(raw_meta),
                document=documents[i] if i < len(documents) else None,
            ))

        matches.sort(key=lambda m: m.score, reverse=True)
        Trace.event("vector.query", {"top_k": top_k, "where": where, "matches": len(matches)})
        return matches

    async def get_by_id(self, record_id: str) -> IndexedRecord | None:
        collection = await self.ensure_collection()
        result = await self._bounded(
            collection.get(ids=[record_id], include=["metadatas", "documents", "embeddings"]),
            operation="get",
        )
        ids = result.get("ids") or []
        if len(ids) == 0:
            return None

        metadatas = result.get("metadatas")
        documents = result.get("documents")
        embeddings = result.get("embeddings")
        vector: list[float] = []
        if embeddings is not None and len(embeddings) > 0 and embeddings[0] is not None:
            vector = [float(x) for x in embeddings[0]]

        return IndexedRecord(
            id=str(ids[0]),
            embedding=vector,
            metadata=metadata_from_backend(metadatas[0] if metadatas else None),
            document_text=(documents[0] if documents else None) or "",
        )

    async def delete_by_id(self, record_id: str) -> None:
        await self.delete_by_ids([record_id])

    async def delete_by_ids(self, record_ids: Sequence[str]) -> None:
        if not record_ids:
            return
        collection = await self.ensure_collection()
        await self._bounded(collection.delete(ids=list(record_ids)), operation="delete")

    async def stats(self) -> IndexStats:
        collection = await self.ensure_collection()
        count = await self._bounded(collection.count(), operation="count")
        # Chroma has no capacity ceiling.
        return IndexStats(
            total_vectors=int(count),
            dimension=self.config.embedding_dimensions,
            index_fullness=0.0,
        )

    async def query_by_date_range(
        self,
        embedding: Sequence[float],
        start: datetime | str,
        end: datetime | str,
        top_k: int = 10,
    ) -> list[QueryMatch]:
        return await self.query(embedding, top_k, [date_range(start, end)])

    async def query_by_source(self, embedding: Sequence[float], source_names: Sequence[str], top_k: int = 10) -> list[QueryMatch]:
        return await self.query(embedding, top_k, [sources(source_names)])

    async def query_by_credibility(self, embedding: Sequence[float], minimum: float, top_k: int = 10) -> list[QueryMatch]:
        return await self.query(embedding, top_k, [credibility_floor(minimum)])

    async def clear_collection(self) -> None:
        """Drop the whole collection. A missing collection is not an error."""
        client = await self._get_client()
        async with self._lock:
            try:
                await asyncio.wait_for(
                    client.delete_collection(name=self.collection_name),
                    timeout=self.timeout_sec,
                )
                logger.info("[VectorIndex] Dropped collection %s", self.collection_name)
            except asyncio.TimeoutError as exc:
                raise RetrievalError(
                    f"Vector index clear_collection timed out after {self.timeout_sec:.1f}s",
                    details={"operation": "clear_collection"},
                ) from exc
            except Exception as exc:
                if not _is_not_found(exc):
                    raise RetrievalError(
                        f"Vector index clear_collection failed: {exc}",
                        details={"operation": "clear_collection"},
                    ) from exc
                logger.debug("[VectorIndex] Collection %s already absent", self.collection_name)
            finally:
                self._collection = None

    record_from_article = staticmethod(record_from_article)
