#!/usr/bin/env python3
"""
Unit tests for the app/repositories layer (expiring store, session slot).

Run with:
    python -m pytest tests/test_repositories.py
"""
import json
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.models import MalformedSaveError
from app.repositories import (
    GAME_SAVE_KEY, HIGH_SCORE_KEY, CacheRepository, SessionRepository,
)
from app.repositories.session_repository import validate_session


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_session(**overrides):
    session = {
        'graph': {
            'nodes': [
                {'id': 'movie-1', 'name': 'Inception', 'type': 'movie', 'discovered': True},
                {'id': 'actor-10', 'name': 'Leonardo DiCaprio', 'type': 'actor', 'discovered': False},
            ],
            'edges': [{'source': 'movie-1', 'target': 'actor-10'}],
        },
        'start_entity': {'id': 1, 'title': 'Inception', 'year': 2010},
        'discovered_ids': ['movie-1'],
        'score': 4,
        'timestamp': 1760000000.0,
    }
    session.update(overrides)
    return session


class TmpDirMixin(unittest.TestCase):
    """Creates a fresh temp directory for each test and cd's into it."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self._orig = os.getcwd()
        os.chdir(self.tmp)

    def tearDown(self):
        os.chdir(self._orig)
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _path(self, name: str) -> str:
        return os.path.join(self.tmp, name)


# ===========================================================================
# CacheRepository
# ===========================================================================

class TestCacheRepository(TmpDirMixin):

    def _make(self, clock=None):
        return CacheRepository(self._path('store.json'), clock=clock or FakeClock())

    def test_starts_empty(self):
        self.assertEqual(self._make().data, {})

    def test_save_and_load(self):
        repo = self._make()
        repo.save('movie_wiki_1', {'extract': 'A thief...'})
        self.assertEqual(repo.load('movie_wiki_1'), {'extract': 'A thief...'})

    def test_load_missing_returns_none(self):
        self.assertIsNone(self._make().load('nope'))

    def test_entry_valid_until_expiry(self):
        clock = FakeClock()
        repo = self._make(clock)
        repo.save('k', 'v', ttl=60)
        clock.now += 60
        self.assertEqual(repo.load('k'), 'v')

    def test_expired_entry_is_removed(self):
        clock = FakeClock()
        repo = self._make(clock)
        repo.save('k', 'v', ttl=60)
        clock.now += 61
        self.assertIsNone(repo.load('k'))
        self.assertNotIn('k', repo.data)
        with open(self._path('store.json')) as f:
            self.assertNotIn('k', json.load(f))

    def test_no_ttl_never_expires(self):
        clock = FakeClock()
        repo = self._make(clock)
        repo.save('k', 'v', ttl=None)
        clock.now += 10 ** 9
        self.assertEqual(repo.load('k'), 'v')

    def test_default_ttl_is_one_hour(self):
        clock = FakeClock()
        repo = self._make(clock)
        repo.save('k', 'v')
        clock.now += 3601
        self.assertIsNone(repo.load('k'))

    def test_clear(self):
        repo = self._make()
        repo.save('a', 1)
        self.assertTrue(repo.clear('a'))
        self.assertFalse(repo.clear('a'))
        self.assertIsNone(repo.load('a'))

    def test_clear_all(self):
        repo = self._make()
        repo.save('a', 1)
        repo.save('b', 2)
        repo.clear_all()
        self.assertEqual(repo.data, {})

    def test_persisted_across_instances(self):
        path = self._path('store.json')
        CacheRepository(path).save('a', [1, 2], ttl=None)
        self.assertEqual(CacheRepository(path).load('a'), [1, 2])

    def test_corrupt_file_returns_empty(self):
        path = self._path('store.json')
        with open(path, 'w') as f:
            f.write('NOT JSON')
        self.assertEqual(CacheRepository(path).data, {})

    def test_wrong_document_type_returns_empty(self):
        path = self._path('store.json')
        with open(path, 'w') as f:
            json.dump([1, 2, 3], f)
        self.assertEqual(CacheRepository(path).data, {})

    def test_unwritable_path_keeps_memory_copy(self):
        repo = CacheRepository(os.path.join(self.tmp, 'missing-dir', 'store.json'))
        repo.save('a', 1)
        self.assertEqual(repo.load('a'), 1)

    def test_failed_write_keeps_previous_file(self):
        path = self._path('store.json')
        repo = CacheRepository(path)
        repo.save('a', 1, ttl=None)
        with patch('app.repositories.base.json.dump', side_effect=OSError('disk full')):
            repo.save('b', 2, ttl=None)
        self.assertEqual(repo.load('b'), 2)
        self.assertEqual(CacheRepository(path).data, {'a': {'data': 1, 'expiry': None}})
        self.assertEqual(os.listdir(self.tmp), ['store.json'])


# ===========================================================================
# validate_session
# ===========================================================================

class TestValidateSession(unittest.TestCase):

    def test_valid_session(self):
        session = make_session()
        self.assertIs(validate_session(session), session)

    def test_not_an_object(self):
        with self.assertRaises(MalformedSaveError):
            validate_session(['graph'])

    def test_missing_graph(self):
        with self.assertRaises(MalformedSaveError):
            validate_session(make_session(graph=None))

    def test_dangling_edge(self):
        session = make_session()
        session['graph']['edges'].append({'source': 'movie-1', 'target': 'actor-99'})
        with self.assertRaises(MalformedSaveError):
            validate_session(session)

    def test_duplicate_node(self):
        session = make_session()
        session['graph']['nodes'].append(dict(session['graph']['nodes'][0]))
        with self.assertRaises(MalformedSaveError):
            validate_session(session)

    def test_unknown_node_type(self):
        session = make_session()
        session['graph']['nodes'][1]['type'] = 'genre'
        with self.assertRaises(MalformedSaveError):
            validate_session(session)

    def test_discovered_ids_out_of_sync(self):
        with self.assertRaises(MalformedSaveError):
            validate_session(make_session(discovered_ids=['movie-1', 'actor-10']))

    def test_negative_score(self):
        with self.assertRaises(MalformedSaveError):
            validate_session(make_session(score=-2))

    def test_missing_start_entity(self):
        with self.assertRaises(MalformedSaveError):
            validate_session(make_session(start_entity=None))

    def test_start_entity_without_id(self):
        with self.assertRaises(MalformedSaveError):
            validate_session(make_session(start_entity={'title': 'Inception'}))

    def test_start_node_must_be_discovered(self):
        session = make_session(discovered_ids=[])
        session['graph']['nodes'][0]['discovered'] = False
        with self.assertRaises(MalformedSaveError):
            validate_session(session)

    def test_start_node_must_exist(self):
        with self.assertRaises(MalformedSaveError):
            validate_session(make_session(start_entity={'id': 99, 'title': 'Memento'}))

    def test_actor_start_node(self):
        session = make_session(start_entity={'id': 10, 'name': 'Leonardo DiCaprio'},
                               discovered_ids=['actor-10'])
        session['graph']['nodes'][0]['discovered'] = False
        session['graph']['nodes'][1]['discovered'] = True
        self.assertIs(validate_session(session), session)


# ===========================================================================
# SessionRepository
# ===========================================================================

class TestSessionRepository(TmpDirMixin):

    def setUp(self):
        super().setUp()
        self.store = CacheRepository(self._path('store.json'))
        self.repo = SessionRepository(self.store)

    def test_no_session(self):
        self.assertIsNone(self.repo.load_session())

    def test_save_and_load(self):
        self.repo.save_session(make_session())
        self.assertEqual(self.repo.load_session(), make_session())

    def test_session_never_expires(self):
        self.repo.save_session(make_session())
        self.assertIsNone(self.store.data[GAME_SAVE_KEY]['expiry'])

    def test_malformed_session_is_discarded(self):
        self.store.save(GAME_SAVE_KEY, {'graph': 'junk'}, ttl=None)
        self.assertIsNone(self.repo.load_session())
        self.assertIsNone(self.store.load(GAME_SAVE_KEY))

    def test_clear_session_keeps_high_score(self):
        self.repo.save_session(make_session())
        self.repo.record_score(30)
        self.repo.clear_session()
        self.assertIsNone(self.repo.load_session())
        self.assertEqual(self.repo.get_high_score(), 30)

    def test_high_score_defaults_to_zero(self):
        self.assertEqual(self.repo.get_high_score(), 0)

    def test_high_score_only_increases(self):
        self.assertTrue(self.repo.record_score(20))
        self.assertFalse(self.repo.record_score(10))
        self.assertFalse(self.repo.record_score(20))
        self.assertEqual(self.repo.get_high_score(), 20)

    def test_garbage_high_score_reads_as_zero(self):
        self.store.save(HIGH_SCORE_KEY, 'lots', ttl=None)
        self.assertEqual(self.repo.get_high_score(), 0)


if __name__ == '__main__':
    unittest.main()
