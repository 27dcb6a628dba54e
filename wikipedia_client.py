"""
wikipedia_client.py
===================
Direct encyclopedia summary source for FilmFrenzy.

A movie or actor name is rarely an unambiguous article title, so a lookup
walks an ordered list of ``(language, title)`` candidates and keeps the
first summary that is not a disambiguation page.  Each request names its
language in the URL, so nothing carries over from one lookup to the next.

Usage
-----
::

    from wikipedia_client import WikipediaClient

    client = WikipediaClient(languages=["fr", "en"])
    summary = client.get_summary("movie", "Inception")
    # {"title": "Inception", "extract": "...", "thumbnail": {...}, "type": "standard"}
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

logger = logging.getLogger('filmfrenzy.wikipedia')

_SUMMARY_URL = "https://{lang}.wikipedia.org/api/rest_v1/page/summary/{title}"
_DEFAULT_TIMEOUT = 10  # seconds
DEFAULT_LANGUAGES = ("fr", "en")

# Title suffix that disambiguates an article, per entity type and language.
_SUFFIXES: Dict[str, Dict[str, str]] = {
    "movie": {"fr": "(film)", "en": "(film)"},
    "actor": {"fr": "(acteur)", "en": "(actor)"},
}

Candidate = Tuple[str, str]


class WikipediaError(Exception):
    """Raised when a single summary candidate cannot be fetched."""


def summary_candidates(
    entity_type: str,
    name: str,
    languages: Sequence[str] = DEFAULT_LANGUAGES,
) -> List[Candidate]:
    """Return the ordered ``(lang, title)`` candidates for *name*.

    For every language the plain title comes first, then the title with the
    type suffix.  Spaces become underscores, as in article URLs.
    """
    base = name.strip().replace(" ", "_")
    if not base:
        return []
    candidates: List[Candidate] = []
    for lang in languages:
        candidates.append((lang, base))
        suffix = _SUFFIXES.get(entity_type, {}).get(lang)
        if suffix:
            candidates.append((lang, f"{base}_{suffix}"))
    return candidates


class WikipediaClient:
    """Fetches page summaries from the Wikipedia REST API."""

    def __init__(
        self,
        languages: Sequence[str] = DEFAULT_LANGUAGES,
        timeout: int = _DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not languages:
            raise ValueError("at least one language is required")
        self.languages = list(languages)
        self._timeout = timeout
        self._session = session or requests.Session()

    def get_summary(self, entity_type: str, name: str) -> Optional[Dict[str, Any]]:
        """Resolve the summary of a movie or actor by *name*.

        Returns:
            The first non-disambiguation summary, or ``None`` once every
            candidate has failed.
        """
        return self.resolve(summary_candidates(entity_type, name, self.languages))

    def resolve(self, candidates: Sequence[Candidate]) -> Optional[Dict[str, Any]]:
        """Try *candidates* in order; first acceptable summary wins."""
        for lang, title in candidates:
            try:
                summary = self.fetch_summary(lang, title)
            except WikipediaError as exc:
                logger.debug("Summary candidate %s/%s failed: %s", lang, title, exc)
                continue
            if summary.get("type") == "disambiguation":
                logger.debug("Summary candidate %s/%s is a disambiguation page", lang, title)
                continue
            return summary
        logger.info("No summary found after %d candidates", len(candidates))
        return None

    def fetch_summary(self, lang: str, title: str) -> Dict[str, Any]:
        """Fetch one article summary.

        Raises:
            WikipediaError: on HTTP errors, network errors or a non-JSON body.
        """
        url = _SUMMARY_URL.format(lang=lang, title=urllib.parse.quote(title, safe=""))
        try:
            resp = self._session.get(url, timeout=self._timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.HTTPError as exc:
            raise WikipediaError(f"HTTP {resp.status_code} for {lang}/{title}") from exc
        except requests.RequestException as exc:
            raise WikipediaError(f"Network error for {lang}/{title}: {exc}") from exc
        except ValueError as exc:
            raise WikipediaError(f"Invalid JSON for {lang}/{title}") from exc
        if not isinstance(body, dict):
            raise WikipediaError(f"Unexpected body for {lang}/{title}")
        return {
            "title": body.get("title", title),
            "extract": body.get("extract", ""),
            "thumbnail": body.get("thumbnail"),
            "type": body.get("type", "standard"),
        }
