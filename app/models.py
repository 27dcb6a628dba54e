"""Core value types shared by the repositories and services."""
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

MOVIE = 'movie'
ACTOR = 'actor'
ENTITY_TYPES = (MOVIE, ACTOR)


class MalformedSaveError(ValueError):
    """Raised when a persisted session cannot be rehydrated."""


class GameState(Enum):
    """Lifecycle states of a game session controller."""
    LOADING = 'loading'
    READY = 'ready'
    AWAITING_GUESS = 'awaiting_guess'
    RESOLVING = 'resolving'


class HintMode(Enum):
    GUESS = 'guess'
    INFO = 'info'


def node_id_for(entity_type: str, entity_id: Any) -> str:
    """Build the composite node id ``"<type>-<entityId>"``."""
    return f"{entity_type}-{entity_id}"


def split_node_id(node_id: str) -> Tuple[str, str]:
    """Split a composite node id into ``(type, entity_id)``."""
    entity_type, _, entity_id = node_id.partition('-')
    if entity_type not in ENTITY_TYPES or not entity_id:
        raise ValueError(f"Invalid node id: {node_id!r}")
    return entity_type, entity_id


def entity_type(entity: Dict) -> str:
    """Movies carry a ``title``, actors a ``name``."""
    return MOVIE if entity.get('title') else ACTOR


def entity_name(entity: Dict) -> str:
    return entity.get('title') or entity.get('name') or ''


def related_type(of_type: str) -> str:
    """Movies relate to actors and actors to movies."""
    return ACTOR if of_type == MOVIE else MOVIE


class Node:
    """A movie or actor in the discovery graph."""

    __slots__ = ('id', 'name', 'type', 'discovered')

    def __init__(self, node_id: str, name: str, node_type: str, discovered: bool = False):
        if node_type not in ENTITY_TYPES:
            raise ValueError(f"Unknown node type: {node_type!r}")
        self.id = node_id
        self.name = name
        self.type = node_type
        self.discovered = discovered

    @classmethod
    def from_entity(cls, entity: Dict, node_type: Optional[str] = None,
                    discovered: bool = False) -> 'Node':
        """Create a node from an API entity dict (movie or actor)."""
        node_type = node_type or entity_type(entity)
        return cls(node_id_for(node_type, entity['id']), entity_name(entity),
                   node_type, discovered)

    @property
    def entity_id(self) -> str:
        return split_node_id(self.id)[1]

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'type': self.type,
                'discovered': self.discovered}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        mark = '+' if self.discovered else '?'
        return f"Node({self.id}{mark}, {self.name!r})"


# An edge endpoint is a node id in canonical form; rendering layers may put
# a Node (or a dict with an ``id``) in its place.
NodeRef = Union[str, Node, Dict[str, Any]]


def ref_id(ref: NodeRef) -> str:
    """Return the plain node id behind an edge endpoint."""
    if isinstance(ref, Node):
        return ref.id
    if isinstance(ref, dict):
        return ref['id']
    return ref


class Edge:
    """Association between two nodes (an actor appeared in a movie)."""

    __slots__ = ('source', 'target')

    def __init__(self, source: NodeRef, target: NodeRef):
        self.source = source
        self.target = target

    def to_dict(self) -> Dict[str, str]:
        return {'source': ref_id(self.source), 'target': ref_id(self.target)}

    def __repr__(self) -> str:
        return f"Edge({ref_id(self.source)} -> {ref_id(self.target)})"


class HintState:
    """Hint progression for the node currently shown in the modal."""

    def __init__(self, level: int = 0, selected_node_id: Optional[str] = None,
                 mode: HintMode = HintMode.GUESS):
        self.level = level
        self.selected_node_id = selected_node_id
        self.mode = mode

    def __repr__(self) -> str:
        return (f"HintState(level={self.level}, node={self.selected_node_id}, "
                f"mode={self.mode.value})")
