# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Basic Usage Example

Index two articles, search them, then fact-check a claim against them.
Needs GEMINI_API_KEY or OPENAI_API_KEY, plus CHROMADB_* for the index.
"""

import asyncio
from datetime import datetime, timezone

from newslens_core.config import NewslensConfig
from newslens_core.engine import NewslensEngine
from newslens_core.schema import Article
from newslens_core.verification import InMemoryHistoryStore


def _article(url, title, summary, source, credibility):
    return Article(
        id=Article.id_from_url(url),
        title=title,
        summary=summary,
        content=summary,
        url=url,
        source=source,
        published_at=datetime.now(timezone.utc),
        category="science",
        credibility_score=credibility,
    )


async def main():
    engine = NewslensEngine(NewslensConfig.from_env(), history=InMemoryHistoryStore())

    try:
        count = await engine.index_articles([
            _article(
                "https://news.example.com/moon-count",
                "Earth still has one natural moon",
                "Astronomers confirmed that Earth has a single natural moon; small quasi-satellites are not moons.",
                "Reuters",
                0.92,
            ),
            _article(
                "https://blog.example.net/petite",
                "NASA hides second moon",
                "A viral post claims NASA discovered a second moon called Petite.",
                "ViralBlog",
                0.15,
            ),
        ])
        print(f"Indexed {count} articles")

        found = await engine.search("how many moons does Earth have", limit=5)
        print("\n🔎 Search:")
        for article, score in zip(found.articles, found.relevance_scores):
            print(f"  {score:.3f}  {article.title} ({article.source})")

        result = await engine.check_claim("NASA discovered a second moon orbiting Earth named Petite")

        print("\n" + "=" * 60)
        print("VERIFICATION RESULT")
        print("=" * 60)
        print(f"\n📝 Verdict:    {result.verdict.value}")
        print(f"   Confidence: {result.confidence:.2f}")
        print(f"\n📖 Explanation:\n  {result.explanation}")
        print(f"\n🔗 Evidence ({len(result.supporting_evidence)}):")
        for e in result.supporting_evidence:
            print(f"  - [{e.source}] {e.relevant_text}")
    finally:
        await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
