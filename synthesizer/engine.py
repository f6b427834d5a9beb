"""
Article engine. Takes approved evidence + LLM provider, produces scored,
routed drafts.
"""

import copy
import logging

from config.settings import Config, ConfigError
from filters.relevance import clamp_score
from llm.jsonparse import extract_json_object
from llm.provider import LLMProvider, LLMError
from models import Article, Evidence
from synthesizer.prompts import (
    DRAFT_SYSTEM, DRAFT_USER,
    EVALUATE_SYSTEM, EVALUATE_USER,
    IMPROVE_SYSTEM, IMPROVE_USER,
)

log = logging.getLogger(__name__)

SCORE_FIELDS = {
    "total_score": "total",
    "seo_score": "seo",
    "readability_score": "readability",
    "accuracy_score": "accuracy",
    "originality_score": "originality",
    "engagement_score": "engagement",
}

# Used when the review call fails or returns nothing usable. Zero scores keep
# an unreviewed draft from outranking a reviewed one.
DEFAULT_QUALITY = {
    "total": 0,
    "seo": 0,
    "readability": 0,
    "accuracy": 0,
    "originality": 0,
    "engagement": 0,
    "improvements": ["Automatic quality review unavailable; review manually."],
    "strengths": [],
    "evaluated": False,
}


def _format_evidence_for_prompt(evidence: list[Evidence], max_items: int = 10) -> str:
    """Format evidence into a text block for the LLM prompt."""
    blocks = []
    for i, ev in enumerate(evidence[:max_items], 1):
        lines = [f"[{i}] {ev.title} ({ev.source}, {ev.domain or 'unknown domain'})", f"URL: {ev.url}"]
        if ev.summary:
            lines.append(ev.summary[:800])
        for quote in ev.quotes[:3]:
            lines.append(f'Quote: "{quote}"')
        for stat in ev.stats[:3]:
            lines.append(f"Stat: {stat}")
        blocks.append("\n".join(lines))
    return "\n\n---\n\n".join(blocks)


def _string_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def parse_quality(data: dict) -> dict:
    """
    Normalize a review payload. Missing or non-numeric scores fall back to
    the default; numbers are clamped into 0-100.
    """
    quality = copy.deepcopy(DEFAULT_QUALITY)
    for raw_key, key in SCORE_FIELDS.items():
        score = clamp_score(data.get(raw_key), low=0, high=100)
        if score is not None:
            quality[key] = round(score)
    quality["improvements"] = _string_list(data.get("improvements")) or list(DEFAULT_QUALITY["improvements"])
    quality["strengths"] = _string_list(data.get("strengths"))
    quality["evaluated"] = True
    return quality


def status_for(quality: dict, quality_threshold: int, auto_publish_threshold: int) -> str:
    """
    Route a reviewed draft by its total score. An unreviewed draft stays a
    draft so a person looks at it.
    """
    if not quality.get("evaluated"):
        return "draft"
    total = quality.get("total", 0)
    if total >= auto_publish_threshold:
        return "approved"
    if total >= quality_threshold:
        return "review"
    return "needs_improvement"


class ArticleWriter:
    def __init__(self, llm: LLMProvider, quality_threshold: int = 70, auto_publish_threshold: int = 85):
        if not 0 <= quality_threshold <= auto_publish_threshold <= 100:
            raise ConfigError(
                f"Need 0 <= quality_threshold ({quality_threshold}) <= "
                f"auto_publish_threshold ({auto_publish_threshold}) <= 100"
            )
        self._llm = llm
        self.quality_threshold = quality_threshold
        self.auto_publish_threshold = auto_publish_threshold

    @classmethod
    def from_config(cls, llm: LLMProvider, config: Config) -> "ArticleWriter":
        return cls(
            llm,
            quality_threshold=config.quality_threshold,
            auto_publish_threshold=config.auto_publish_threshold,
        )

    def _write(self, stage: str, system_prompt: str, user_prompt: str) -> dict | None:
        """One writing call. Parsed JSON, or None on LLM failure or junk."""
        try:
            response = self._llm.complete(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=0.5,
                max_tokens=4000,
                json_mode=True,
            )
            log.info(
                f"{stage}: {response.input_tokens} in, "
                f"{response.output_tokens} out ({response.model})"
            )
            if response.truncated:
                log.warning(f"{stage} stopped at max_tokens; output may be cut off")
        except LLMError as e:
            log.error(f"LLM error during {stage.lower()}: {e}")
            return None

        try:
            return extract_json_object(response.text)
        except ValueError as e:
            log.error(f"Unparseable {stage.lower()}: {e}. First 300 chars: {response.text[:300]}")
            return None

    def _to_article(self, data: dict, evidence_ids: list[int]) -> Article | None:
        title = str(data.get("title") or "").strip()
        content = str(data.get("content") or "").strip()
        if not title or not content:
            log.error("Article is missing title or content")
            return None

        reading_time = data.get("estimated_reading_time")
        seo = {
            "metaDescription": str(data.get("meta_description") or "")[:160],
            "keywords": _string_list(data.get("keywords")),
            "readingTime": reading_time if isinstance(reading_time, int) else None,
        }
        return Article(title=title, content=content, seo=seo, evidence_ids=list(evidence_ids))

    def draft(self, evidence: list[Evidence]) -> Article | None:
        """Draft an article from evidence. None if the LLM fails or returns junk."""
        if not evidence:
            log.info("No evidence to draft from")
            return None

        prompt = DRAFT_USER.format(evidence=_format_evidence_for_prompt(evidence))
        data = self._write("Draft", DRAFT_SYSTEM, prompt)
        if data is None:
            return None
        return self._to_article(data, [ev.id for ev in evidence if ev.id is not None])

    def improve(self, article: Article, improvements: list[str]) -> Article | None:
        """Rewrite a draft against the reviewer's list. None on failure."""
        prompt = IMPROVE_USER.format(
            title=article.title,
            meta_description=article.seo.get("metaDescription", ""),
            keywords=", ".join(article.seo.get("keywords", [])),
            content=article.content[:12000],
            improvements="\n".join(f"- {line}" for line in improvements),
        )
        data = self._write("Improve", IMPROVE_SYSTEM, prompt)
        if data is None:
            return None
        return self._to_article(data, article.evidence_ids)

    def evaluate(self, article: Article) -> dict:
        """Score a draft. Never raises; degrades to DEFAULT_QUALITY."""
        prompt = EVALUATE_USER.format(
            title=article.title,
            meta_description=article.seo.get("metaDescription", ""),
            keywords=", ".join(article.seo.get("keywords", [])),
            content=article.content[:12000],
        )
        try:
            response = self._llm.complete(
                system_prompt=EVALUATE_SYSTEM,
                user_prompt=prompt,
                temperature=0.1,
                max_tokens=1000,
                json_mode=True,
            )
            data = extract_json_object(response.text)
        except (LLMError, ValueError) as e:
            log.warning(f"Quality review failed, using defaults: {e}")
            return copy.deepcopy(DEFAULT_QUALITY)

        return parse_quality(data)

    def _review(self, article: Article) -> Article:
        article.quality = self.evaluate(article)
        article.status = status_for(article.quality, self.quality_threshold, self.auto_publish_threshold)
        return article

    def generate(self, evidence: list[Evidence]) -> Article | None:
        """
        Draft, review, route by score.

        A draft below quality_threshold gets one improvement pass. The
        rewrite replaces it only if its own review clears the threshold;
        otherwise the original is kept as needs_improvement.
        """
        article = self.draft(evidence)
        if article is None:
            return None
        self._review(article)

        if article.status == "needs_improvement" and article.quality.get("improvements"):
            log.info(
                f"'{article.title}' scored {article.quality['total']} "
                f"(< {self.quality_threshold}); trying one improvement pass"
            )
            improved = self.improve(article, article.quality["improvements"])
            if improved is not None:
                self._review(improved)
                if improved.status in ("review", "approved"):
                    article = improved
                else:
                    log.info(f"Improved draft scored {improved.quality['total']}; keeping the original")

        log.info(f"Generated '{article.title}' (quality {article.quality['total']}, {article.status})")
        return article
