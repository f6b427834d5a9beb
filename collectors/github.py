"""
GitHub trending collector. Finds fast-rising AI repositories.

Uses the GitHub REST search API: repositories created in the last N days,
filtered by language and one AI topic, sorted by stars. No HTML scraping.
"""

import logging
from datetime import datetime, timedelta, timezone

import requests

from collectors.base import Collector, CollectionError, bounded, deadline_passed
from config.settings import Config
from filters.relevance import relevance_score
from models import CollectedItem

log = logging.getLogger(__name__)

SEARCH_API = "https://api.github.com/search/repositories"


class GitHubTrendingCollector(Collector):
    key = "github"
    label = "GitHub Trending"

    def __init__(self, config: Config):
        super().__init__(config)
        self._languages = config.github_languages
        self._topic = config.github_topic
        self._window_days = config.github_window_days
        self._per_language = config.github_per_language
        self._token = config.github_token
        self._keywords = config.ai_keywords

    def _new_session(self) -> requests.Session:
        session = super()._new_session()
        if self._token and not self._token.startswith(("ghp_...", "your")):
            session.headers["Authorization"] = f"token {self._token}"
        session.headers["Accept"] = "application/vnd.github.v3+json"
        return session

    def _request(self, session: requests.Session, params: dict, deadline: float | None = None) -> dict:
        """Search request. Falls back to unauthenticated on 401."""
        resp = session.get(SEARCH_API, params=params, timeout=self._request_timeout(deadline))

        if resp.status_code == 401 and "Authorization" in session.headers:
            log.warning("GitHub token rejected (401). Falling back to unauthenticated.")
            del session.headers["Authorization"]
            resp = session.get(SEARCH_API, params=params, timeout=self._request_timeout(deadline))

        if resp.status_code == 403:
            raise CollectionError("GitHub API rate limit exceeded")
        if resp.status_code != 200:
            raise CollectionError(f"GitHub search: HTTP {resp.status_code}")
        return resp.json()

    def _query(self, language: str) -> str:
        since = (datetime.now(timezone.utc) - timedelta(days=self._window_days)).date()
        return f"topic:{self._topic} language:{language} created:>={since.isoformat()}"

    def collect(self, limit: int | None = None, deadline: float | None = None) -> list[CollectedItem]:
        items: list[CollectedItem] = []
        seen: set[str] = set()
        failures = 0
        last_error = None

        with self._new_session() as session:
            for language in self._languages:
                if deadline_passed(deadline):
                    log.warning("GitHub: deadline reached, skipping remaining languages")
                    break
                try:
                    data = self._request(session, {
                        "q": self._query(language),
                        "sort": "stars",
                        "order": "desc",
                        "per_page": self._per_language,
                    }, deadline)
                except (requests.RequestException, CollectionError) as e:
                    log.warning(f"GitHub search error for {language}: {e}")
                    failures += 1
                    last_error = e
                    continue

                for repo in data.get("items", []):
                    full_name = repo.get("full_name", "")
                    if not full_name or full_name in seen:
                        continue
                    seen.add(full_name)
                    items.append(self._to_item(repo, language))

        if failures and failures == len(self._languages):
            raise CollectionError(f"all GitHub searches failed: {last_error}")

        items.sort(key=lambda i: i.metadata.get("stars", 0), reverse=True)
        return bounded(items, limit)

    def _to_item(self, repo: dict, language: str) -> CollectedItem:
        full_name = repo["full_name"]
        owner, _, name = full_name.partition("/")
        description = (repo.get("description") or "").strip()
        stars = repo.get("stargazers_count", 0)

        created = None
        if repo.get("created_at"):
            created = datetime.fromisoformat(repo["created_at"].replace("Z", "+00:00"))

        return CollectedItem(
            title=f"{name} - {description[:100]}" if description else name,
            url=repo.get("html_url") or f"https://github.com/{full_name}",
            source=self.key,
            summary=f"{description}\n\nLanguage: {repo.get('language') or language}\nStars: {stars}",
            published_at=created,
            relevance_score=relevance_score(
                f"{full_name} {' '.join(repo.get('topics', []))}",
                description,
                self._keywords,
                engagement=stars,
            ),
            author=owner,
            metadata={
                "repository": full_name,
                "language": repo.get("language") or language,
                "stars": stars,
                "topics": repo.get("topics", []),
                "tags": ["github", "open-source"],
            },
        )
