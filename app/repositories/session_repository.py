"""Repository for the in-progress game session and the all-time high score."""
import logging
from typing import Any, Dict, Optional

from ..models import ENTITY_TYPES, MalformedSaveError, entity_type, node_id_for
from .cache_repository import CacheRepository

GAME_SAVE_KEY = 'filmfrenzy_game_save'
HIGH_SCORE_KEY = 'filmfrenzy_high_score'

logger = logging.getLogger('filmfrenzy.repository.SessionRepository')


def validate_session(raw: Any) -> Dict[str, Any]:
    """Check that *raw* is a well-formed session record and return it.

    Raises:
        MalformedSaveError: describing the first problem found.
    """
    if not isinstance(raw, dict):
        raise MalformedSaveError("session is not an object")
    graph = raw.get('graph')
    if not isinstance(graph, dict):
        raise MalformedSaveError("missing graph")
    nodes = graph.get('nodes')
    edges = graph.get('edges')
    if not isinstance(nodes, list) or not isinstance(edges, list):
        raise MalformedSaveError("graph must hold node and edge lists")

    ids = set()
    discovered = set()
    for node in nodes:
        if not isinstance(node, dict):
            raise MalformedSaveError("node is not an object")
        node_id = node.get('id')
        if not isinstance(node_id, str) or not isinstance(node.get('name'), str):
            raise MalformedSaveError(f"node without id/name: {node!r}")
        if node.get('type') not in ENTITY_TYPES:
            raise MalformedSaveError(f"node {node_id} has unknown type {node.get('type')!r}")
        if not isinstance(node.get('discovered'), bool):
            raise MalformedSaveError(f"node {node_id} has no discovered flag")
        if node_id in ids:
            raise MalformedSaveError(f"duplicate node {node_id}")
        ids.add(node_id)
        if node['discovered']:
            discovered.add(node_id)

    for edge in edges:
        if not isinstance(edge, dict):
            raise MalformedSaveError("edge is not an object")
        if edge.get('source') not in ids or edge.get('target') not in ids:
            raise MalformedSaveError(f"dangling edge {edge!r}")

    saved_ids = raw.get('discovered_ids')
    if not isinstance(saved_ids, list) or set(saved_ids) != discovered:
        raise MalformedSaveError("discovered_ids out of sync with node flags")
    score = raw.get('score')
    if isinstance(score, bool) or not isinstance(score, int) or score < 0:
        raise MalformedSaveError(f"invalid score {score!r}")
    start = raw.get('start_entity')
    if not isinstance(start, dict) or 'id' not in start:
        raise MalformedSaveError("missing start entity")
    start_id = node_id_for(entity_type(start), start['id'])
    if start_id not in discovered:
        raise MalformedSaveError(f"start node {start_id} is missing or undiscovered")
    return raw


class SessionRepository:
    """Holds the single game-session slot and the high score.

    Both live in a :class:`CacheRepository` under fixed keys and never
    expire.  A malformed session is discarded on load so the caller falls
    back to a fresh game.
    """

    def __init__(self, store: CacheRepository) -> None:
        self._store = store

    @property
    def store(self) -> CacheRepository:
        return self._store

    def save_session(self, session: Dict[str, Any]) -> None:
        self._store.save(GAME_SAVE_KEY, session, ttl=None)
        logger.debug("Game state saved (%d nodes)", len(session['graph']['nodes']))

    def load_session(self) -> Optional[Dict[str, Any]]:
        """Return the saved session, or ``None`` when absent or malformed."""
        raw = self._store.load(GAME_SAVE_KEY)
        if raw is None:
            return None
        try:
            return validate_session(raw)
        except MalformedSaveError as exc:
            logger.warning("Discarding malformed game save: %s", exc)
            self.clear_session()
            return None

    def clear_session(self) -> None:
        self._store.clear(GAME_SAVE_KEY)

    def get_high_score(self) -> int:
        value = self._store.load(HIGH_SCORE_KEY)
        if isinstance(value, bool) or not isinstance(value, int):
            return 0
        return value

    def record_score(self, score: int) -> bool:
        """Raise the high score to *score* if it is higher.

        Returns:
            ``True`` when a new high score was stored.
        """
        if score <= self.get_high_score():
            return False
        self._store.save(HIGH_SCORE_KEY, score, ttl=None)
        logger.info("New high score: %d", score)
        return True
