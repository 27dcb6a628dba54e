"""Game session controller: lifecycle, guessing, scoring and hints."""
import logging
import time
from concurrent.futures import Executor, Future
from typing import Any, Callable, Dict, List, Optional, Tuple

from lookup_client import LookupAPIError, LookupNotFoundError

from ..models import (
    MOVIE, GameState, HintMode, HintState, Node, related_type,
)
from ..repositories.session_repository import SessionRepository
from .discovery_graph import DiscoveryGraph
from .hints import max_hint_level, revealed_hints

logger = logging.getLogger('filmfrenzy.controller')

CORRECT = 'correct'
WRONG = 'wrong'
INFO = 'info'


class GameController:
    """Owns one play-through of the discovery game.

    The controller is created by the view that shows the game and lives as
    long as that view.  Every mutation of the session (new game, hint
    unlock, correct guess) is persisted immediately through the
    :class:`SessionRepository`.

    States::

        LOADING -> READY -> AWAITING_GUESS -> RESOLVING -> READY

    Node details and summaries are fetched when a node is selected.  Without
    an executor they are fetched inline.  With an *executor* only the
    network requests run on a worker; the finished results are picked up
    by :meth:`collect` (also called from :meth:`poll`) on the thread that
    owns the controller, which is the only thread touching its state and
    the store.  Each result carries the request number that asked for it,
    and results for anything but the current selection are dropped.
    """

    BASE_POINTS = 10
    HINT_PENALTY = 2
    # Seconds the success message stays up before the modal closes
    CLOSE_DELAY = 1.5

    def __init__(self, lookup, sessions: SessionRepository,
                 executor: Optional[Executor] = None,
                 clock: Callable[[], float] = time.monotonic,
                 seed_kind: Optional[str] = None) -> None:
        """
        Args:
            lookup:    An :class:`~lookup_client.EntityLookupClient` (or any
                       object with the same methods).
            sessions:  Persistence for the session slot and high score.
            executor:  Optional executor for node-info fetches.
            clock:     Monotonic clock used for the delayed modal close.
            seed_kind: Restrict new seeds to ``"movie"`` or ``"actor"``.
        """
        self.lookup = lookup
        self.sessions = sessions
        self.seed_kind = seed_kind
        self._executor = executor
        self._clock = clock

        self.state = GameState.LOADING
        self.graph = DiscoveryGraph()
        self.start_entity: Optional[Dict[str, Any]] = None
        self.score = 0
        self.high_score = sessions.get_high_score()
        self.timestamp: Optional[float] = None
        self.error: Optional[str] = None

        self.hint = HintState()
        self.modal_open = False
        self.guess_input = ''
        self.guess_result: Optional[str] = None
        self.node_info: Dict[str, Any] = {}
        self.loading_info = False
        self.last_expansion = ([], [])

        self._request_seq = 0
        self._close_at: Optional[float] = None
        # (request number, node, cached summary, future) per background fetch
        self._pending: List[Tuple[int, Node, Optional[Dict[str, Any]], Future]] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """Resume the saved session or start a new one.

        Returns:
            ``True`` once the controller is ``READY``; ``False`` when no
            game could be started (see :attr:`error`).
        """
        self.state = GameState.LOADING
        self.error = None
        self._clear_selection()
        saved = self.sessions.load_session()
        if saved is not None:
            self.graph = DiscoveryGraph.from_persisted(saved['graph'])
            self.start_entity = saved['start_entity']
            self.score = saved['score']
            self.timestamp = saved.get('timestamp')
            self.state = GameState.READY
            logger.info("Game loaded from save (%d nodes, score %d)", len(self.graph), self.score)
            return True
        return self._start_new_game()

    def reset(self) -> bool:
        """Drop the current play-through and start over with a new seed.

        The high score is kept.
        """
        self.sessions.clear_session()
        self.state = GameState.LOADING
        self.error = None
        self._clear_selection()
        self.graph = DiscoveryGraph()
        self.start_entity = None
        self.score = 0
        return self._start_new_game()

    def _start_new_game(self) -> bool:
        try:
            entity = self.lookup.get_random_entity(self.seed_kind)
        except LookupNotFoundError as exc:
            logger.error("No seed entity available: %s", exc)
            self.error = "No movie or actor with relations is available."
            return False
        except LookupAPIError as exc:
            logger.error("Error initializing game: %s", exc)
            self.error = f"Could not start a new game: {exc}"
            return False

        self.graph = DiscoveryGraph.seed(entity)
        self.start_entity = entity
        self.score = 0
        self._save()
        self.state = GameState.READY
        logger.info("New game started with %s", self.graph.nodes[0])
        return True

    # ------------------------------------------------------------------
    # Node selection
    # ------------------------------------------------------------------

    def select_node(self, node_id: str) -> bool:
        """Open the modal for *node_id*.

        A discovered node opens in info mode (all hints, no guessing, no
        cost).  An undiscovered node opens for guessing with no hints.

        Returns:
            ``False`` when nothing can be selected right now or the node
            does not exist.
        """
        if self.state not in (GameState.READY, GameState.AWAITING_GUESS):
            return False
        node = self.graph.get_node(node_id)
        if node is None:
            logger.warning("Selected unknown node %s", node_id)
            return False

        self._request_seq += 1
        self.modal_open = True
        self.guess_input = ''
        self.node_info = {}
        if node.discovered:
            self.hint = HintState(max_hint_level(node.type), node.id, HintMode.INFO)
            self.guess_result = INFO
            self.state = GameState.READY
        else:
            self.hint = HintState(0, node.id, HintMode.GUESS)
            self.guess_result = None
            self.state = GameState.AWAITING_GUESS
        self._request_node_info(node, self._request_seq)
        return True

    def _request_node_info(self, node: Node, seq: int) -> None:
        self.loading_info = True
        if self._executor is None:
            summary = self.lookup.get_summary(node.type, node.entity_id, name=node.name)
            self._apply_node_info(seq, node.id, self._fetch_detail(node), summary)
            return
        cached = self.lookup.cached_summary(node.type, node.entity_id)
        future = self._executor.submit(self._fetch_in_background, node, cached is None)
        self._pending.append((seq, node, cached, future))

    def _fetch_in_background(self, node: Node, need_summary: bool
                             ) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
        # Runs on a worker: network only, no controller state, no store.
        summary = None
        if need_summary:
            summary = self.lookup.fetch_summary(node.type, node.entity_id, name=node.name)
        return self._fetch_detail(node), summary

    def _fetch_detail(self, node: Node) -> Dict[str, Any]:
        """Year and genres of a movie; empty for actors or on failure."""
        if node.type != MOVIE:
            return {}
        try:
            detail = self.lookup.get_entity_detail(MOVIE, node.entity_id)
        except (LookupNotFoundError, LookupAPIError) as exc:
            logger.warning("Error fetching movie data for %s: %s", node.id, exc)
            return {}
        return {
            'year': detail.get('year'),
            'genres': [g.get('name') if isinstance(g, dict) else g
                       for g in detail.get('genres') or []],
        }

    def collect(self) -> int:
        """Apply background fetches that have finished.

        Must be called from the thread that owns the controller.  Fetched
        summaries are cached even when their selection has moved on.

        Returns:
            The number of results applied to the current selection.
        """
        applied = 0
        still_running = []
        for seq, node, cached, future in self._pending:
            if not future.done():
                still_running.append((seq, node, cached, future))
                continue
            try:
                detail, fetched = future.result()
            except Exception:
                logger.exception("Fetching details for %s failed", node.id)
                detail, fetched = {}, None
            if fetched is not None:
                self.lookup.cache_summary(node.type, node.entity_id, fetched)
            if self._apply_node_info(seq, node.id, detail, cached or fetched):
                applied += 1
        self._pending = still_running
        return applied

    def _apply_node_info(self, seq: int, node_id: str, detail: Dict[str, Any],
                         summary: Optional[Dict[str, Any]]) -> bool:
        """Store fetched info unless the selection moved on meanwhile."""
        if (seq != self._request_seq or not self.modal_open
                or self.hint.selected_node_id != node_id):
            logger.debug("Discarding stale details for %s", node_id)
            return False
        info = dict(detail)
        if summary:
            for key in ('title', 'extract', 'thumbnail'):
                if summary.get(key) is not None:
                    info[key] = summary[key]
        self.node_info = info
        self.loading_info = False
        return True

    # ------------------------------------------------------------------
    # Guessing
    # ------------------------------------------------------------------

    def unlock_hint(self) -> bool:
        """Reveal the next hint tier for the node being guessed.

        Costs :attr:`HINT_PENALTY` points (the score never drops below 0).

        Returns:
            ``True`` when a tier was unlocked.
        """
        if self.state is not GameState.AWAITING_GUESS:
            return False
        node = self.selected_node
        if node is None or self.hint.level >= max_hint_level(node.type):
            return False
        self.hint.level += 1
        self.score = max(0, self.score - self.HINT_PENALTY)
        self._save()
        logger.debug("Hint %d unlocked for %s", self.hint.level, node.id)
        return True

    def submit_guess(self, text: str) -> Optional[str]:
        """Check *text* against the selected node's name.

        Matching ignores case and surrounding whitespace.  A wrong guess
        costs nothing and keeps the text for another try.  A correct guess
        scores, reveals the node, grows the graph around it and schedules
        the modal to close.

        Returns:
            ``"correct"``, ``"wrong"``, or ``None`` when no guess is
            possible (no node awaiting a guess, or blank text).
        """
        if self.state is not GameState.AWAITING_GUESS:
            return None
        self.guess_input = text
        guess = text.strip()
        node = self.selected_node
        if not guess or node is None:
            return None
        if guess.lower() != node.name.lower():
            self.guess_result = WRONG
            return WRONG

        self.state = GameState.RESOLVING
        self.guess_result = CORRECT
        self.score += self.BASE_POINTS
        if self.sessions.record_score(self.score):
            self.high_score = self.score
        self.graph.mark_discovered(node.id)

        related: List[Dict[str, Any]] = []
        try:
            related = self.lookup.get_related_entities(node.type, node.entity_id)
        except LookupNotFoundError as exc:
            logger.warning("Discovered node %s vanished from the API: %s", node.id, exc)
            self.error = f"No details found for {node.name}."
        except LookupAPIError as exc:
            logger.warning("Error discovering neighbours of %s: %s", node.id, exc)
        self.last_expansion = self.graph.expand(node.id, related, related_type(node.type))
        self._save()
        self._close_at = self._clock() + self.CLOSE_DELAY
        logger.info("Discovered %s (+%d nodes), score %d",
                    node.id, len(self.last_expansion[0]), self.score)
        return CORRECT

    def poll(self, now: Optional[float] = None) -> bool:
        """Apply finished background fetches, then close the modal once the
        post-guess delay has elapsed.

        Returns:
            ``True`` when the modal was closed by this call.
        """
        self.collect()
        if self.state is not GameState.RESOLVING or self._close_at is None:
            return False
        if (self._clock() if now is None else now) < self._close_at:
            return False
        self.close_modal()
        return True

    def close_modal(self) -> None:
        """Close the modal and return to ``READY``."""
        self._clear_selection()
        if self.state in (GameState.AWAITING_GUESS, GameState.RESOLVING):
            self.state = GameState.READY

    def _clear_selection(self) -> None:
        # Bumping the request number invalidates fetches still in flight.
        self._request_seq += 1
        self._close_at = None
        self.modal_open = False
        self.hint = HintState()
        self.guess_input = ''
        self.guess_result = None
        self.node_info = {}
        self.loading_info = False

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def selected_node(self) -> Optional[Node]:
        if self.hint.selected_node_id is None:
            return None
        return self.graph.get_node(self.hint.selected_node_id)

    @property
    def discovered_ids(self):
        return self.graph.discovered_ids

    def hints(self) -> List[Dict[str, Any]]:
        """Hints unlocked for the selected node (empty when none selected)."""
        node = self.selected_node
        if node is None:
            return []
        return revealed_hints(node, self.hint.level, self.node_info,
                              reveal_name=self.hint.mode is HintMode.INFO)

    def snapshot(self) -> Dict[str, Any]:
        """The session in its persisted form."""
        graph = self.graph.to_persisted()
        return {
            'graph': graph,
            'start_entity': self.start_entity,
            'discovered_ids': [n['id'] for n in graph['nodes'] if n['discovered']],
            'score': self.score,
            'timestamp': self.timestamp,
        }

    def _save(self) -> None:
        self.timestamp = time.time()
        self.sessions.save_session(self.snapshot())
