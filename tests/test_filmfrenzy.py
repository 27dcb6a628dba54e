#!/usr/bin/env python3
"""
Unit tests for the filmfrenzy command-line front end.

Run with:
    python -m pytest tests/test_filmfrenzy.py
"""
import json
import logging
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import filmfrenzy
from app.models import ACTOR, MOVIE, GameState, Node
from app.repositories import CacheRepository, SessionRepository
from app.services import GameController
from lookup_client import LookupAPIError
from wikipedia_client import WikipediaClient


INCEPTION = {
    'id': 1, 'title': 'Inception', 'year': 2010, 'genres': [],
    'actors': [{'id': 10, 'name': 'Leonardo DiCaprio'},
               {'id': 11, 'name': 'Elliot Page'}],
}


class TmpDirMixin(unittest.TestCase):
    """Creates a fresh temp directory for each test and cd's into it."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self._orig = os.getcwd()
        os.chdir(self.tmp)

    def tearDown(self):
        os.chdir(self._orig)
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _write_config(self, config, name='config.json'):
        path = os.path.join(self.tmp, name)
        with open(path, 'w') as f:
            if isinstance(config, str):
                f.write(config)
            else:
                json.dump(config, f)
        return path


# ===========================================================================
# Configuration
# ===========================================================================

@patch.dict(os.environ, {}, clear=True)
class TestLoadConfig(TmpDirMixin):

    def test_missing_file_uses_defaults(self):
        config = filmfrenzy.load_config(os.path.join(self.tmp, 'nope.json'))
        self.assertEqual(config, filmfrenzy.DEFAULT_CONFIG)

    def test_file_values_override_defaults(self):
        path = self._write_config({'api_base_url': 'https://films.example/api',
                                   'summary_source': 'wikipedia'})
        config = filmfrenzy.load_config(path)
        self.assertEqual(config['api_base_url'], 'https://films.example/api')
        self.assertEqual(config['summary_source'], 'wikipedia')
        self.assertEqual(config['summary_ttl_hours'], 24)

    def test_environment_overrides_file(self):
        path = self._write_config({'api_base_url': 'https://films.example/api'})
        with patch.dict(os.environ, {'FILMFRENZY_API_URL': 'http://other:3001/api',
                                     'FILMFRENZY_STORE': 'elsewhere.json',
                                     'FILMFRENZY_LOG_LEVEL': 'DEBUG'}):
            config = filmfrenzy.load_config(path)
        self.assertEqual(config['api_base_url'], 'http://other:3001/api')
        self.assertEqual(config['store_path'], 'elsewhere.json')
        self.assertEqual(config['log_level'], 'DEBUG')

    @patch('builtins.print')
    def test_invalid_json_exits(self, _print):
        path = self._write_config('{not json')
        with self.assertRaises(SystemExit):
            filmfrenzy.load_config(path)

    @patch('builtins.print')
    def test_non_object_exits(self, _print):
        path = self._write_config([1, 2])
        with self.assertRaises(SystemExit):
            filmfrenzy.load_config(path)

    @patch('builtins.print')
    def test_invalid_url_exits(self, _print):
        path = self._write_config({'api_base_url': 'localhost:3001'})
        with self.assertRaises(SystemExit):
            filmfrenzy.load_config(path)

    @patch('builtins.print')
    def test_unknown_summary_source_exits(self, _print):
        path = self._write_config({'summary_source': 'imdb'})
        with self.assertRaises(SystemExit):
            filmfrenzy.load_config(path)


class TestBuildController(TmpDirMixin):

    def _config(self, **overrides):
        config = dict(filmfrenzy.DEFAULT_CONFIG)
        config['store_path'] = os.path.join(self.tmp, 'store.json')
        config.update(overrides)
        return config

    def test_api_summaries(self):
        controller = filmfrenzy.build_controller(self._config())
        self.assertIsNone(controller.lookup.wikipedia)
        self.assertEqual(controller.lookup.summary_ttl, 24 * 3600)
        self.assertEqual(controller.lookup.stats_ttl, 3600)
        self.assertIs(controller.lookup.cache, controller.sessions.store)

    def test_wikipedia_summaries(self):
        controller = filmfrenzy.build_controller(
            self._config(summary_source='wikipedia', summary_languages=['en']))
        self.assertIsInstance(controller.lookup.wikipedia, WikipediaClient)
        self.assertEqual(controller.lookup.wikipedia.languages, ['en'])


# ===========================================================================
# Helpers
# ===========================================================================

class TestHelpers(unittest.TestCase):

    def test_node_label(self):
        self.assertEqual(filmfrenzy.node_label(Node('movie-1', 'Inception', MOVIE, True)),
                         'Inception')
        self.assertEqual(filmfrenzy.node_label(Node('movie-1', 'Inception', MOVIE)),
                         'Unknown Movie')
        self.assertEqual(filmfrenzy.node_label(Node('actor-10', 'Leonardo DiCaprio', ACTOR)),
                         'Unknown Actor')

    def test_setup_logging_level(self):
        logger = filmfrenzy.setup_logging('DEBUG')
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertEqual(len(logger.handlers), 1)
        filmfrenzy.setup_logging('bogus')
        self.assertEqual(logger.level, logging.WARNING)
        self.assertEqual(len(logger.handlers), 1)


# ===========================================================================
# Terminal game
# ===========================================================================

class TestGameConsole(TmpDirMixin):

    def setUp(self):
        super().setUp()
        self.now = [0.0]
        self.lookup = MagicMock()
        self.lookup.get_random_entity.return_value = INCEPTION
        self.lookup.get_entity_detail.return_value = INCEPTION
        self.lookup.get_summary.return_value = None
        self.lookup.get_related_entities.return_value = [{'id': 1, 'title': 'Inception'}]
        self.lookup.get_stats.return_value = {'totalMovies': 3, 'totalActors': 2}
        sessions = SessionRepository(CacheRepository(os.path.join(self.tmp, 'store.json')))
        self.controller = GameController(self.lookup, sessions, clock=lambda: self.now[0])
        self.console = filmfrenzy.GameConsole(self.controller)

    def _sleep(self, seconds):
        self.now[0] += seconds

    @patch('builtins.print')
    def test_guess_round(self, _print):
        answers = iter(['2', '/hint', 'Leo', 'leonardo dicaprio', 'q'])
        with patch('builtins.input', side_effect=lambda _prompt: next(answers)), \
                patch('filmfrenzy.time.sleep', side_effect=self._sleep):
            self.console.run()
        self.assertEqual(self.controller.score, 10)
        self.assertIs(self.controller.state, GameState.READY)
        self.assertIn('actor-10', self.controller.discovered_ids)

    @patch('builtins.print')
    def test_close_without_guessing(self, _print):
        answers = iter(['3', '/close', 'q'])
        with patch('builtins.input', side_effect=lambda _prompt: next(answers)):
            self.console.run()
        self.assertEqual(self.controller.discovered_ids, {'movie-1'})
        self.assertFalse(self.controller.modal_open)

    @patch('builtins.print')
    def test_start_failure(self, mock_print):
        self.lookup.get_random_entity.side_effect = LookupAPIError('down')
        with patch('builtins.input') as mock_input:
            self.console.run()
        mock_input.assert_not_called()
        printed = ' '.join(str(c.args[0]) for c in mock_print.call_args_list)
        self.assertIn('down', printed)

    @patch('builtins.print')
    def test_show_stats(self, mock_print):
        self.console.show_stats()
        printed = ' '.join(str(c.args[0]) for c in mock_print.call_args_list)
        self.assertIn('totalMovies', printed)


# ===========================================================================
# main()
# ===========================================================================

class TestMain(TmpDirMixin):

    def setUp(self):
        super().setUp()
        self.store_path = os.path.join(self.tmp, 'store.json')
        self.env = patch.dict(os.environ, {'FILMFRENZY_STORE': self.store_path})
        self.env.start()

    def tearDown(self):
        self.env.stop()
        super().tearDown()

    @patch('builtins.print')
    def test_high_score(self, mock_print):
        SessionRepository(CacheRepository(self.store_path)).record_score(42)
        filmfrenzy.main(['--high-score'])
        printed = ' '.join(str(c.args[0]) for c in mock_print.call_args_list)
        self.assertIn('42', printed)

    @patch('builtins.print')
    def test_clear_cache(self, _print):
        store = CacheRepository(self.store_path)
        store.save('movie_wiki_1', {'extract': 'x'})
        SessionRepository(store).record_score(42)
        filmfrenzy.main(['--clear-cache'])
        self.assertEqual(CacheRepository(self.store_path).data, {})

    @patch('builtins.print')
    def test_unexpected_error_exits(self, _print):
        with patch('filmfrenzy.build_controller', side_effect=RuntimeError('kaboom')):
            with self.assertRaises(SystemExit) as ctx:
                filmfrenzy.main([])
        self.assertEqual(ctx.exception.code, 1)

    @patch('builtins.print')
    def test_keyboard_interrupt(self, _print):
        with patch('filmfrenzy.GameConsole.run', side_effect=KeyboardInterrupt):
            filmfrenzy.main([])


if __name__ == '__main__':
    unittest.main()
