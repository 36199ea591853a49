# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""
Engine CLI Commands

Commands:
- check: Fact-check a claim against the index
- search: Semantic search over indexed articles
- embed: Print the embedding of a text
- index: Embed and index articles from a JSON file
- stats: Show vector index statistics
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, NoReturn

from newslens_core.errors import NewslensError


def _build_engine():
    from newslens_core.engine import NewslensEngine
    from newslens_core.verification import InMemoryHistoryStore

    return NewslensEngine.from_env(history=InMemoryHistoryStore())


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _run(coro_factory: Callable[[Any], Awaitable[int]]) -> int:
    async def runner() -> int:
        engine = _build_engine()
        try:
            return await coro_factory(engine)
        finally:
            await engine.close()

    return asyncio.run(runner())


def cmd_check(args: argparse.Namespace) -> int:
    """Fact-check a single claim."""

    async def go(engine) -> int:
        result = await engine.check_claim(args.claim, args.article_id)
        if args.json:
            _print_json(result.model_dump(by_alias=True, mode="json"))
            return 0
        print(f"Verdict:    {result.verdict.value}")
        print(f"Confidence: {result.confidence:.2f}")
        print(f"Reasoning:  {result.explanation}")
        if result.supporting_evidence:
            print("Evidence:")
            for e in result.supporting_evidence:
                print(f"  - [{e.source}, {e.credibility_score:.2f}] {e.relevant_text}")
        return 0

    return _run(go)


def cmd_search(args: argparse.Namespace) -> int:
    """Semantic search over indexed articles."""
    from newslens_core.schema import SearchFilters

    filters = None
    if args.source or args.category or args.min_credibility is not None:
        filters = SearchFilters(
            sources=args.source or None,
            categories=args.category or None,
            min_credibility=args.min_credibility,
        )

    async def go(engine) -> int:
        result = await engine.search(args.query, filters, args.limit)
        if args.json:
            _print_json(result.model_dump(by_alias=True, mode="json"))
            return 0
        if not result.articles:
            print("No results")
            return 0
        for article, score in zip(result.articles, result.relevance_scores):
            print(f"{score:.3f}  {article.title}  ({article.source})")
            print(f"       {article.url}")
        print(f"\n{result.total_count} results in {result.processing_time:.0f}ms")
        return 0

    return _run(go)


def cmd_embed(args: argparse.Namespace) -> int:
    """Embed a text and print the vector."""

    async def go(engine) -> int:
        result = await engine.embeddings.embed_with_usage(args.text, args.model)
        payload = result.model_dump(by_alias=True, mode="json")
        if not args.full:
            payload["embedding"] = payload["embedding"][:8]
            payload["dimension"] = len(result.embedding)
        _print_json(payload)
        return 0

    return _run(go)


def cmd_index(args: argparse.Namespace) -> int:
    """Index articles from a JSON file (list or {articles:[...]})."""
    from newslens_core.schema import Article

    path = Path(args.articles_file)
    if not path.exists():
        print(f"✗ Articles file not found: {path}", file=sys.stderr)
        return 1

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"✗ Failed to parse JSON: {e}", file=sys.stderr)
        return 1

    items = payload.get("articles") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        print("✗ Articles JSON must be a list or {articles:[...]}.", file=sys.stderr)
        return 1

    articles = []
    for raw in items:
        if isinstance(raw, dict) and not raw.get("id") and raw.get("url"):
            raw = {**raw, "id": Article.id_from_url(raw["url"])}
        articles.append(Article.model_validate(raw))

    async def go(engine) -> int:
        count = await engine.index_articles(articles)
        print(f"✓ Indexed {count} of {len(articles)} articles")
        return 0

    return _run(go)


def cmd_stats(args: argparse.Namespace) -> int:
    """Show vector index statistics."""

    async def go(engine) -> int:
        stats = await engine.index.stats()
        _print_json(stats.model_dump(by_alias=True, mode="json"))
        return 0

    return _run(go)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="newslens",
        description="Semantic news search and claim verification",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Fact-check a claim")
    check_parser.add_argument("claim", help="Claim text to verify")
    check_parser.add_argument("--article-id", help="Article the claim came from")
    check_parser.add_argument("--json", action="store_true", help="Print the raw result JSON")
    check_parser.set_defaults(func=cmd_check)

    search_parser = subparsers.add_parser("search", help="Search indexed articles")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("--limit", "-n", type=int, default=None, help="Maximum results (default: 20)")
    search_parser.add_argument("--source", action="append", help="Restrict to a source (repeatable)")
    search_parser.add_argument("--category", action="append", help="Restrict to a category (repeatable)")
    search_parser.add_argument("--min-credibility", type=float, help="Minimum source credibility (0-1)")
    search_parser.add_argument("--json", action="store_true", help="Print the raw result JSON")
    search_parser.set_defaults(func=cmd_search)

    embed_parser = subparsers.add_parser("embed", help="Embed a text")
    embed_parser.add_argument("text", help="Text to embed")
    embed_parser.add_argument("--model", help="Embedding model override")
    embed_parser.add_argument("--full", action="store_true", help="Print the whole vector")
    embed_parser.set_defaults(func=cmd_embed)

    index_parser = subparsers.add_parser("index", help="Index articles from a JSON file")
    index_parser.add_argument("articles_file", help="Path to JSON file with articles")
    index_parser.set_defaults(func=cmd_index)

    stats_parser = subparsers.add_parser("stats", help="Show vector index statistics")
    stats_parser.set_defaults(func=cmd_stats)

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except NewslensError as e:
        print(f"✗ [{e.code}] {e.message}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
