from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from guide.dto import Candidate, SearchHit
from guide.logger import get_logger

logger = get_logger(__name__)


class SearchIndexClient:
    """Ranked semantic search over the attractions index (REST)."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        index: str,
        api_version: str,
        semantic_configuration: Optional[str] = None,
        top: int = 5,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = f"{endpoint.rstrip('/')}/indexes/{index}/docs/search"
        self.api_version = api_version
        self.semantic_configuration = semantic_configuration
        self.top = top
        self.headers = {"Content-Type": "application/json", "api-key": api_key}
        self._client = client or httpx.AsyncClient(timeout=30.0)

    def build_query(self, text: str) -> Dict[str, Any]:
        query: Dict[str, Any] = {"search": text, "top": self.top, "count": True}
        if self.semantic_configuration:
            query.update({
                "queryType": "semantic",
                "semanticConfiguration": self.semantic_configuration,
                "captions": "extractive",
            })
        return query

    async def search(self, text: str) -> List[SearchHit]:
        response = await self._client.post(
            self.url,
            params={"api-version": self.api_version},
            headers=self.headers,
            json=self.build_query(text),
        )
        response.raise_for_status()

        hits = []
        for document in response.json().get("value", []):
            # Semantic reranker score (0-4) wins over the BM25 score when present
            score = document.get("@search.rerankerScore")
            if score is None:
                score = document.get("@search.score", 0.0)
            hits.append(SearchHit(document=document, score=float(score)))
        return hits

    async def aclose(self):
        await self._client.aclose()


def select_best(hits: List[SearchHit]) -> Optional[SearchHit]:
    """Highest score wins; strict comparison keeps the first hit on ties."""
    best = None
    for hit in hits:
        if best is None or hit.score > best.score:
            best = hit
    return best


class CandidateResolver:
    def __init__(
        self,
        search_client,
        threshold: float = 2.0,
        title_field: str = "title",
        content_field: str = "content_text",
        image_source_field: str = "image_source",
    ):
        self.search_client = search_client
        self.threshold = threshold
        self.title_field = title_field
        self.content_field = content_field
        self.image_source_field = image_source_field

    def to_candidate(self, hit: SearchHit) -> Candidate:
        doc = hit.document
        return Candidate(
            title=str(doc.get(self.title_field) or ""),
            content=str(doc.get(self.content_field) or ""),
            score=hit.score,
            image_source=str(doc[self.image_source_field]) if doc.get(self.image_source_field) else None,
        )

    async def resolve(self, entity_label: Optional[str]) -> Optional[Candidate]:
        if not entity_label or not entity_label.strip():
            return None

        try:
            hits = await self.search_client.search(entity_label)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Attraction search failed: {e}")
            hits = []

        best = select_best(hits)
        if best is None:
            logger.info(f"No search results for '{entity_label}'")
            return None

        if best.score < self.threshold:
            logger.info(
                f"Top match for '{entity_label}' scored {best.score:.3f} "
                f"(< {self.threshold}), treating as no match"
            )
            return None

        candidate = self.to_candidate(best)
        logger.info(f"✅ Matched '{candidate.title}' (score {best.score:.3f})")
        return candidate
