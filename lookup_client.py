"""
lookup_client.py
================
Client for the FilmFrenzy REST API (movies, actors, random seed entities,
statistics) and for encyclopedia summaries.

Summaries and statistics change rarely, so both are kept in the expiring
:class:`~app.repositories.cache_repository.CacheRepository`:

* summaries for 24 hours under ``<type>_wiki_<id>``
* statistics for one hour under ``filmfrenzy_stats``

Summaries come from the API's ``/wikipedia/<type>/summary/<id>`` route by
default.  When a :class:`~wikipedia_client.WikipediaClient` is supplied the
client instead looks the entity up by name directly on Wikipedia.

Usage
-----
::

    from lookup_client import EntityLookupClient

    client = EntityLookupClient("http://localhost:3001/api", cache=store)
    seed = client.get_random_entity()
    actors = client.get_related_entities("movie", seed["id"])
    summary = client.get_summary("movie", seed["id"])   # None when unavailable
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from app.models import ACTOR, ENTITY_TYPES, MOVIE, entity_name
from app.repositories.cache_repository import CacheRepository
from wikipedia_client import WikipediaClient

logger = logging.getLogger('filmfrenzy.lookup')

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_API_URL = "http://localhost:3001/api"
_DEFAULT_TIMEOUT = 10  # seconds
SUMMARY_TTL = 24 * 60 * 60
STATS_TTL = 60 * 60
STATS_CACHE_KEY = "filmfrenzy_stats"

_DETAIL_PATHS = {MOVIE: "/movies/{id}", ACTOR: "/actors/{id}"}
_RELATED_KEYS = {MOVIE: "actors", ACTOR: "movies"}


class LookupNotFoundError(Exception):
    """Raised when the API answers 404 for the requested entity."""


class LookupAPIError(Exception):
    """Raised on network failures and unexpected API responses."""


def summary_cache_key(entity_type: str, entity_id: Any) -> str:
    return f"{entity_type}_wiki_{entity_id}"


class EntityLookupClient:
    """Fetches entity records and summaries for the game controller."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        cache: Optional[CacheRepository] = None,
        timeout: int = _DEFAULT_TIMEOUT,
        wikipedia: Optional[WikipediaClient] = None,
        summary_ttl: float = SUMMARY_TTL,
        stats_ttl: float = STATS_TTL,
    ) -> None:
        """
        Args:
            base_url:    API root, e.g. ``http://localhost:3001/api``.
            cache:       Expiring store for summaries and statistics; when
                         ``None`` nothing is cached.
            timeout:     HTTP request timeout in seconds.
            wikipedia:   Optional direct summary source.
            summary_ttl: Summary cache lifetime in seconds.
            stats_ttl:   Statistics cache lifetime in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.wikipedia = wikipedia
        self.summary_ttl = summary_ttl
        self.stats_ttl = stats_ttl
        self._timeout = timeout
        self._session = requests.Session()

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def get_random_entity(self, kind: Optional[str] = None) -> Dict[str, Any]:
        """Return a random movie or actor that has at least one relation.

        Args:
            kind: ``"movie"`` or ``"actor"`` to restrict the draw; ``None``
                  lets the API pick either.

        Raises:
            LookupNotFoundError: No entity qualifies.
            LookupAPIError:      Network or API failure.
        """
        if kind is not None and kind not in ENTITY_TYPES:
            raise ValueError(f"Unknown entity type: {kind!r}")
        path = "/random" if kind is None else f"/random/{kind}"
        entity = self._get(path)
        if not isinstance(entity, dict) or "id" not in entity:
            raise LookupAPIError(f"Malformed random entity: {entity!r}")
        return entity

    def get_entity_detail(self, entity_type: str, entity_id: Any) -> Dict[str, Any]:
        """Return the full record of a movie (with ``actors``/``genres``) or
        an actor (with ``movies``).

        Raises:
            LookupNotFoundError: Unknown id.
            LookupAPIError:      Network or API failure.
        """
        if entity_type not in ENTITY_TYPES:
            raise ValueError(f"Unknown entity type: {entity_type!r}")
        detail = self._get(_DETAIL_PATHS[entity_type].format(id=entity_id))
        if not isinstance(detail, dict):
            raise LookupAPIError(f"Malformed {entity_type} record: {detail!r}")
        return detail

    def get_related_entities(self, entity_type: str, entity_id: Any) -> List[Dict[str, Any]]:
        """Actors of a movie or movies of an actor."""
        detail = self.get_entity_detail(entity_type, entity_id)
        return list(detail.get(_RELATED_KEYS[entity_type]) or [])

    # ------------------------------------------------------------------
    # Summaries and statistics
    # ------------------------------------------------------------------

    def get_summary(self, entity_type: str, entity_id: Any,
                    name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Return the encyclopedia summary of an entity, or ``None``.

        The cache is consulted first; a fetched summary is cached.  Any
        failure (unknown entity, no acceptable article, network error)
        yields ``None`` so the caller can show a "no data" hint instead.

        Args:
            name: The entity's title or name, when the caller already has
                  it; saves the detail request in Wikipedia mode.
        """
        cached = self.cached_summary(entity_type, entity_id)
        if cached is not None:
            return cached
        summary = self.fetch_summary(entity_type, entity_id, name)
        if summary is not None:
            self.cache_summary(entity_type, entity_id, summary)
        return summary

    def cached_summary(self, entity_type: str, entity_id: Any) -> Optional[Dict[str, Any]]:
        if self.cache is None:
            return None
        key = summary_cache_key(entity_type, entity_id)
        cached = self.cache.load(key)
        if cached is not None:
            logger.debug("Summary for %s served from cache", key)
        return cached

    def cache_summary(self, entity_type: str, entity_id: Any, summary: Dict[str, Any]) -> None:
        if self.cache is not None:
            self.cache.save(summary_cache_key(entity_type, entity_id), summary,
                            ttl=self.summary_ttl)

    def fetch_summary(self, entity_type: str, entity_id: Any,
                      name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Fetch a summary over the network only, bypassing the cache.

        Safe to call from a worker thread: the cache is neither read nor
        written.
        """
        try:
            if self.wikipedia is not None:
                if not name:
                    name = entity_name(self.get_entity_detail(entity_type, entity_id))
                summary = self.wikipedia.get_summary(entity_type, name)
            else:
                summary = self._get(f"/wikipedia/{entity_type}/summary/{entity_id}")
        except (LookupNotFoundError, LookupAPIError) as exc:
            logger.warning("Could not fetch summary for %s %s: %s", entity_type, entity_id, exc)
            return None

        if not isinstance(summary, dict) or summary.get("type") == "disambiguation":
            return None
        return summary

    def get_stats(self) -> Optional[Dict[str, Any]]:
        """Return database statistics (counts per table, movies per year...).

        Served from the cache for ``stats_ttl`` seconds; ``None`` on failure.
        """
        if self.cache is not None:
            cached = self.cache.load(STATS_CACHE_KEY)
            if cached is not None:
                return cached
        try:
            stats = self._get("/stats")
        except (LookupNotFoundError, LookupAPIError) as exc:
            logger.warning("Could not fetch stats: %s", exc)
            return None
        if self.cache is not None and isinstance(stats, dict):
            self.cache.save(STATS_CACHE_KEY, stats, ttl=self.stats_ttl)
        return stats

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, path: str) -> Any:
        """GET *path* under the API root and return the unwrapped body.

        Some routes answer ``{"status": ..., "data": ...}``, others the bare
        record; both come back as the record.
        """
        url = self.base_url + path
        try:
            resp = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise LookupAPIError(f"Network error calling {path}: {exc}") from exc

        if resp.status_code == 404:
            raise LookupNotFoundError(f"Not found: {path}")
        try:
            resp.raise_for_status()
            body = resp.json()
        except requests.HTTPError as exc:
            raise LookupAPIError(f"API error {resp.status_code} for {path}") from exc
        except ValueError as exc:
            raise LookupAPIError(f"Invalid JSON from {path}") from exc

        if isinstance(body, dict) and "status" in body and "data" in body:
            if body["status"] != "success":
                raise LookupAPIError(f"API returned status {body['status']!r} for {path}")
            return body["data"]
        return body
