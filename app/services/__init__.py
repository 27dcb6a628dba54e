"""Services package: expose all concrete services from one import."""
from .discovery_graph import DiscoveryGraph
from .game_controller import GameController
from .hints import HINT_TIERS, max_hint_level, revealed_hints

__all__ = [
    'DiscoveryGraph',
    'GameController',
    'HINT_TIERS',
    'max_hint_level',
    'revealed_hints',
]
