"""Repository package: expose all concrete repositories from one import."""
from .cache_repository import CacheRepository
from .session_repository import GAME_SAVE_KEY, HIGH_SCORE_KEY, SessionRepository

__all__ = [
    'CacheRepository',
    'SessionRepository',
    'GAME_SAVE_KEY',
    'HIGH_SCORE_KEY',
]
