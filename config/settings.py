"""
Configuration. All settings from env vars or a single config file.
No YAML. No TOML parsing. Just a Python dict you edit.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

# Auto-load .env file so you don't need `export $(grep ...)` every time
from dotenv import load_dotenv
load_dotenv()


class ConfigError(Exception):
    """Raised when configuration makes the requested operation impossible."""
    pass


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name, "")
    if not raw.strip():
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


# Registry order. Also the tie-break when the global cap truncates.
DEFAULT_SOURCES = ["hackernews", "github", "devto", "reddit", "arxiv", "rss", "ai-analysis"]

AI_KEYWORDS = [
    "ai", "artificial intelligence", "machine learning", "deep learning",
    "gpt", "llm", "neural network", "chatgpt", "claude", "openai",
    "anthropic", "gemini", "llama", "stable diffusion", "midjourney",
    "langchain", "vector database", "rag", "transformer", "diffusion",
    "agent", "whisper", "hugging face", "huggingface",
]


@dataclass
class Config:
    # LLM provider: "claude" | "openai" | "openrouter" | "" (disabled)
    llm_provider: str = os.environ.get("RADAR_LLM_PROVIDER", "openai")

    # API keys: env only, never stored
    anthropic_api_key: str = os.environ.get("ANTHROPIC_API_KEY", "")
    openai_api_key: str = os.environ.get("OPENAI_API_KEY", "")
    openrouter_api_key: str = os.environ.get("OPENROUTER_API_KEY", "")

    # Models
    anthropic_model: str = os.environ.get("RADAR_ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
    openai_model: str = os.environ.get("RADAR_OPENAI_MODEL", "gpt-4o-mini")
    openrouter_model: str = os.environ.get("RADAR_OPENROUTER_MODEL", "anthropic/claude-sonnet-4")

    # Storage
    db_path: Path = Path(os.environ.get("RADAR_DB_PATH", "data/radar.db"))

    # Shared secret for scheduled collection calls. Empty = no check.
    cron_secret: str = os.environ.get("CRON_SECRET", "")

    # ── Collection run ──
    # Global cap: a run never returns more than this many items in total.
    max_items: int = int(os.environ.get("RADAR_MAX_ITEMS", "50"))
    # Seconds a single collector may run before it is reported as failed.
    source_timeout: float = float(os.environ.get("RADAR_SOURCE_TIMEOUT", "20"))
    # Collectors in flight at once.
    max_workers: int = int(os.environ.get("RADAR_MAX_WORKERS", "8"))
    sources: list[str] = field(
        default_factory=lambda: _env_list("RADAR_SOURCES", DEFAULT_SOURCES)
    )

    # HTTP timeout per upstream request
    http_timeout: float = float(os.environ.get("RADAR_HTTP_TIMEOUT", "10"))
    user_agent: str = os.environ.get("RADAR_USER_AGENT", "content-radar/0.1")

    ai_keywords: list[str] = field(default_factory=lambda: list(AI_KEYWORDS))

    # ── Hacker News ──
    hn_max_stories: int = int(os.environ.get("RADAR_HN_MAX_STORIES", "60"))
    hn_min_score: int = int(os.environ.get("RADAR_HN_MIN_SCORE", "20"))

    # ── GitHub trending ──
    github_token: str = os.environ.get("GITHUB_TOKEN", "")
    github_languages: list[str] = field(
        default_factory=lambda: _env_list("RADAR_GITHUB_LANGUAGES", ["python", "typescript"])
    )
    # Topic qualifier for the search query (GitHub ANDs multiple topics)
    github_topic: str = os.environ.get("RADAR_GITHUB_TOPIC", "llm")
    github_window_days: int = int(os.environ.get("RADAR_GITHUB_WINDOW_DAYS", "7"))
    github_per_language: int = int(os.environ.get("RADAR_GITHUB_PER_LANGUAGE", "5"))

    # ── Dev.to ──
    devto_tags: list[str] = field(
        default_factory=lambda: _env_list("RADAR_DEVTO_TAGS", ["ai", "machinelearning", "llm"])
    )
    devto_per_tag: int = int(os.environ.get("RADAR_DEVTO_PER_TAG", "10"))

    # ── Reddit (public RSS, no auth) ──
    reddit_subreddits: list[str] = field(default_factory=lambda: _env_list(
        "RADAR_REDDIT_SUBREDDITS",
        ["MachineLearning", "artificial", "LocalLLaMA", "OpenAI", "ClaudeAI"],
    ))
    reddit_per_subreddit: int = int(os.environ.get("RADAR_REDDIT_PER_SUBREDDIT", "10"))

    # ── arXiv ──
    arxiv_feed: str = os.environ.get("RADAR_ARXIV_FEED", "https://rss.arxiv.org/rss/cs.AI")
    arxiv_max_items: int = int(os.environ.get("RADAR_ARXIV_MAX_ITEMS", "15"))

    # ── RSS feeds (tech news) ──
    rss_feeds: list[str] = field(default_factory=lambda: _env_list("RADAR_RSS_FEEDS", [
        "https://techcrunch.com/category/artificial-intelligence/feed/",
        "https://www.theverge.com/rss/ai-artificial-intelligence/index.xml",
        "https://venturebeat.com/category/ai/feed/",
        "https://www.technologyreview.com/feed/",
        "https://openai.com/news/rss.xml",
        "https://huggingface.co/blog/feed.xml",
    ]))
    rss_per_feed: int = int(os.environ.get("RADAR_RSS_PER_FEED", "10"))

    # ── LLM market analysis source ──
    analysis_min_relevance: float = float(os.environ.get("RADAR_ANALYSIS_MIN_RELEVANCE", "7"))
    analysis_max_items: int = int(os.environ.get("RADAR_ANALYSIS_MAX_ITEMS", "5"))

    # ── Article routing (review total score, 0-100) ──
    # Below quality_threshold: needs_improvement, one rewrite is attempted.
    quality_threshold: int = int(os.environ.get("RADAR_QUALITY_THRESHOLD", "70"))
    # At or above: approved without a human pass.
    auto_publish_threshold: int = int(os.environ.get("RADAR_AUTO_PUBLISH_THRESHOLD", "85"))

    def llm_configured(self) -> bool:
        """True when the selected LLM provider has a key."""
        provider = self.llm_provider.lower()
        keys = {
            "claude": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "openrouter": self.openrouter_api_key,
        }
        return bool(keys.get(provider))


def load_config() -> Config:
    return Config()
