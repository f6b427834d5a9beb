"""
LLM market-analysis source. Asks the configured model for the AI trends
a B2B audience should know about right now, as structured JSON.

Only registered when an LLM provider is configured. Items below the
configured relevance floor are dropped.
"""

import logging
from datetime import datetime, timezone

from collectors.base import MIN_REQUEST_TIMEOUT, Collector, CollectionError, bounded, time_left
from config.settings import Config
from filters.relevance import clamp_score
from llm.jsonparse import extract_json_object
from llm.provider import LLMError, LLMProvider
from models import CollectedItem

log = logging.getLogger(__name__)

ANALYSIS_SYSTEM = """You are a market analyst covering applied AI for business buyers.
You only report developments you can attribute to a named company, product or paper,
and you always include a canonical URL for each."""

ANALYSIS_USER = """List the {count} most important AI developments of the past two weeks
that a B2B marketing or operations team should act on.

Return JSON in exactly this shape:
{{
  "trends": [
    {{
      "title": "short, specific headline (max 80 chars)",
      "url": "canonical source URL",
      "summary": "why it matters, with concrete numbers where possible (max 400 chars)",
      "category": "revenue | efficiency | skills | investment",
      "relevance": 0-10,
      "key_players": ["company or product"]
    }}
  ]
}}"""


class AIAnalysisCollector(Collector):
    key = "ai-analysis"
    label = "AI Trend Analysis"

    def __init__(self, config: Config, llm: LLMProvider):
        super().__init__(config)
        self._llm = llm
        self._min_relevance = config.analysis_min_relevance
        self._max_items = config.analysis_max_items

    def collect(self, limit: int | None = None, deadline: float | None = None) -> list[CollectedItem]:
        count = self._max_items if limit is None else max(1, min(self._max_items, limit))
        # One call, so the deadline becomes its request timeout.
        kwargs = {}
        left = time_left(deadline)
        if left is not None:
            kwargs["timeout"] = max(MIN_REQUEST_TIMEOUT, left)
        try:
            response = self._llm.complete(
                system_prompt=ANALYSIS_SYSTEM,
                user_prompt=ANALYSIS_USER.format(count=count),
                temperature=0.3,
                max_tokens=2000,
                json_mode=True,
                **kwargs,
            )
        except LLMError as e:
            raise CollectionError(str(e)) from e

        log.info(
            f"Analysis: {response.input_tokens} in, "
            f"{response.output_tokens} out ({response.model})"
        )
        if response.truncated:
            log.warning("Analysis stopped at max_tokens; trailing trends may be lost")

        try:
            data = extract_json_object(response.text)
        except ValueError as e:
            raise CollectionError(f"malformed analysis response: {e}") from e

        trends = data.get("trends", [])
        if not isinstance(trends, list):
            raise CollectionError("malformed analysis response: 'trends' is not a list")

        items = []
        for trend in trends:
            item = self._to_item(trend)
            if item is None:
                continue
            if (item.relevance_score or 0) < self._min_relevance:
                continue
            items.append(item)

        return bounded(items, limit)

    def _to_item(self, trend) -> CollectedItem | None:
        """Validate one trend dict. Anything unusable is skipped, not fatal."""
        if not isinstance(trend, dict):
            return None
        title = str(trend.get("title") or "").strip()
        url = str(trend.get("url") or "").strip()
        if not title or not url.startswith(("http://", "https://")):
            return None

        players = trend.get("key_players") or []
        if not isinstance(players, list):
            players = []

        return CollectedItem(
            title=title,
            url=url,
            source=self.key,
            summary=str(trend.get("summary") or "").strip(),
            published_at=datetime.now(timezone.utc),
            relevance_score=clamp_score(trend.get("relevance")),
            author=self._llm.name(),
            metadata={
                "category": str(trend.get("category") or ""),
                "key_players": [str(p) for p in players],
                "tags": ["analysis"],
            },
        )
