#!/usr/bin/env python3
"""
FilmFrenzy - movie and actor discovery game
Start from one movie or actor, then name its co-stars and films to uncover
the graph around it, with hints for a few points each.
"""

import argparse
import json
import logging
import os
import sys
import time
from typing import Dict, List, Optional

from colorama import init, Fore, Style

from app.models import MOVIE, GameState, HintMode, Node
from app.repositories import CacheRepository, SessionRepository
from app.services import GameController
from lookup_client import DEFAULT_API_URL, EntityLookupClient
from wikipedia_client import DEFAULT_LANGUAGES, WikipediaClient

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root FilmFrenzy logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal play is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, str(level).upper(), logging.WARNING)
    logger = logging.getLogger('filmfrenzy')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


logger = setup_logging()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: Dict = {
    'api_base_url': DEFAULT_API_URL,
    'store_path': '.filmfrenzy_store.json',
    'log_level': 'WARNING',
    'api_timeout_seconds': 10,
    'summary_ttl_hours': 24,
    'stats_ttl_hours': 1,
    'summary_source': 'api',
    'summary_languages': list(DEFAULT_LANGUAGES),
}

SUMMARY_SOURCES = ('api', 'wikipedia')


def load_config(config_path: str) -> Dict:
    """Load configuration from a JSON file with environment variable support.

    A missing file is not an error: the defaults are used.  Environment
    variables take precedence over config file values:

    - FILMFRENZY_API_URL overrides api_base_url
    - FILMFRENZY_STORE overrides store_path
    - FILMFRENZY_LOG_LEVEL overrides log_level
    """
    config = dict(DEFAULT_CONFIG)
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            print(f"{Fore.RED}Error parsing config file: {e}")
            sys.exit(1)
        if not isinstance(loaded, dict):
            print(f"{Fore.RED}Error: config file must contain a JSON object")
            sys.exit(1)
        config.update(loaded)
    else:
        logger.warning("Config file '%s' not found, using defaults", config_path)

    if os.getenv('FILMFRENZY_API_URL'):
        config['api_base_url'] = os.getenv('FILMFRENZY_API_URL')
    if os.getenv('FILMFRENZY_STORE'):
        config['store_path'] = os.getenv('FILMFRENZY_STORE')
    if os.getenv('FILMFRENZY_LOG_LEVEL'):
        config['log_level'] = os.getenv('FILMFRENZY_LOG_LEVEL')

    if not str(config.get('api_base_url', '')).startswith(('http://', 'https://')):
        print(f"{Fore.RED}Error: api_base_url must be an http(s) URL")
        print(f"{Fore.YELLOW}Your provided URL: {config.get('api_base_url')}")
        sys.exit(1)
    if config.get('summary_source') not in SUMMARY_SOURCES:
        print(f"{Fore.RED}Error: summary_source must be one of {', '.join(SUMMARY_SOURCES)}")
        sys.exit(1)
    return config


def build_controller(config: Dict) -> GameController:
    """Wire the store, lookup client and controller from *config*."""
    store = CacheRepository(config['store_path'])
    wikipedia = None
    if config['summary_source'] == 'wikipedia':
        wikipedia = WikipediaClient(languages=config['summary_languages'],
                                    timeout=config['api_timeout_seconds'])
    lookup = EntityLookupClient(
        config['api_base_url'],
        cache=store,
        timeout=config['api_timeout_seconds'],
        wikipedia=wikipedia,
        summary_ttl=config['summary_ttl_hours'] * 3600,
        stats_ttl=config['stats_ttl_hours'] * 3600,
    )
    return GameController(lookup, SessionRepository(store))


# ---------------------------------------------------------------------------
# Terminal game
# ---------------------------------------------------------------------------

def node_label(node: Node) -> str:
    """Discovered nodes show their name, the others only their type."""
    if node.discovered:
        return node.name
    return 'Unknown Movie' if node.type == MOVIE else 'Unknown Actor'


class GameConsole:
    """Interactive terminal front end for one :class:`GameController`."""

    HINT_COMMAND = '/hint'
    CLOSE_COMMAND = '/close'

    def __init__(self, controller: GameController):
        self.controller = controller

    def start(self) -> bool:
        if not self.controller.load():
            print(f"{Fore.RED}{self.controller.error}")
            return False
        return True

    def show_board(self) -> List[Node]:
        """Print the graph and return the nodes in display order."""
        c = self.controller
        start = c.start_entity or {}
        print(f"\n{Fore.CYAN}{Style.BRIGHT}FilmFrenzy")
        print(f"{Fore.WHITE}{'='*50}")
        print(f"{Fore.YELLOW}Started with: {Fore.WHITE}{start.get('title') or start.get('name')}")
        print(f"{Fore.YELLOW}Score: {Fore.WHITE}{c.score}    "
              f"{Fore.YELLOW}High score: {Fore.WHITE}{c.high_score}    "
              f"{Fore.YELLOW}Discovered: {Fore.WHITE}{len(c.discovered_ids)}/{len(c.graph)}")
        print(f"{Fore.WHITE}{'='*50}")
        nodes = c.graph.nodes
        for i, node in enumerate(nodes, 1):
            color = Fore.GREEN if node.discovered else Fore.WHITE
            links = ', '.join(node_label(n) for n in c.graph.neighbours(node.id) if n.discovered)
            line = f"{Fore.YELLOW}{i:3}. {color}{node_label(node)}"
            if links:
                line += f"{Fore.WHITE}  (linked to {links})"
            print(line)
        return nodes

    def show_modal(self) -> None:
        c = self.controller
        node = c.selected_node
        if node is None:
            return
        if c.hint.mode is HintMode.INFO:
            print(f"\n{Fore.CYAN}{Style.BRIGHT}{node.name}")
        else:
            kind = 'movie' if node.type == MOVIE else 'actor'
            print(f"\n{Fore.CYAN}{Style.BRIGHT}Guess this {kind}")
        hints = c.hints()
        if not hints and c.hint.mode is HintMode.GUESS:
            print(f"{Fore.WHITE}No hints unlocked yet ({self.HINT_COMMAND} costs "
                  f"{c.HINT_PENALTY} points).")
        for hint in hints:
            value = hint['value'] if hint['value'] is not None else 'no data'
            print(f"{Fore.YELLOW}{hint['kind'].title()}: {Fore.WHITE}{value}")
        genres = c.node_info.get('genres')
        if c.hint.mode is HintMode.INFO and genres:
            print(f"{Fore.YELLOW}Genres: {Fore.WHITE}{', '.join(g for g in genres if g)}")

    def guess_loop(self) -> None:
        c = self.controller
        while c.state is GameState.AWAITING_GUESS:
            self.show_modal()
            text = input(f"{Fore.GREEN}Your guess ({self.HINT_COMMAND}, {self.CLOSE_COMMAND}): "
                         f"{Fore.WHITE}")
            command = text.strip().lower()
            if command == self.CLOSE_COMMAND:
                c.close_modal()
            elif command == self.HINT_COMMAND:
                if not c.unlock_hint():
                    print(f"{Fore.YELLOW}All hints are already unlocked.")
            else:
                result = c.submit_guess(text)
                if result == 'correct':
                    print(f"{Fore.GREEN}Correct! +{c.BASE_POINTS} points. "
                          f"{len(c.last_expansion[0])} new nodes revealed.")
                    time.sleep(c.CLOSE_DELAY)
                    c.poll()
                elif result == 'wrong':
                    print(f"{Fore.RED}Wrong, try again.")

    def show_stats(self) -> None:
        stats = self.controller.lookup.get_stats()
        if not stats:
            print(f"{Fore.RED}Statistics are not available.")
            return
        print(f"\n{Fore.CYAN}{Style.BRIGHT}Database statistics")
        for key in ('totalMovies', 'totalActors', 'totalGenres', 'averageActorsPerMovie'):
            if key in stats:
                print(f"{Fore.YELLOW}{key}: {Fore.WHITE}{stats[key]}")

    def run(self) -> None:
        """Run the interactive loop until the player quits."""
        if not self.start():
            return
        c = self.controller
        while True:
            nodes = self.show_board()
            choice = input(f"\n{Fore.GREEN}Node number, (r)eset, (s)tats or (q)uit: "
                           f"{Fore.WHITE}").strip().lower()
            if choice == 'q':
                print(f"\n{Fore.CYAN}Thanks for playing FilmFrenzy!")
                break
            elif choice == 'r':
                if not c.reset():
                    print(f"{Fore.RED}{c.error}")
                    break
            elif choice == 's':
                self.show_stats()
            elif choice.isdigit() and 1 <= int(choice) <= len(nodes):
                c.select_node(nodes[int(choice) - 1].id)
                if c.hint.mode is HintMode.INFO:
                    self.show_modal()
                    c.close_modal()
                else:
                    self.guess_loop()
                if c.error:
                    print(f"{Fore.YELLOW}{c.error}")
                    c.error = None
            else:
                print(f"{Fore.RED}Invalid choice. Please try again.")


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='FilmFrenzy - discover movies and actors one guess at a time',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  filmfrenzy                    # Resume or start a game
  filmfrenzy --reset            # Drop the saved game and start a new one
  filmfrenzy --stats            # Show database statistics and exit
  filmfrenzy --high-score       # Show the high score and exit
        """
    )
    parser.add_argument(
        '--config', '-c',
        default='config.json',
        help='Path to config file (default: config.json)'
    )
    parser.add_argument(
        '--reset',
        action='store_true',
        help='Discard the saved game before playing'
    )
    parser.add_argument(
        '--stats', '-s',
        action='store_true',
        help='Show database statistics and exit'
    )
    parser.add_argument(
        '--high-score',
        action='store_true',
        help='Show the high score and exit'
    )
    parser.add_argument(
        '--clear-cache',
        action='store_true',
        help='Delete every stored entry (saved game, high score, summaries) and exit'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Override the configured log level'
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        setup_logging(args.log_level or config.get('log_level', 'WARNING'))
        controller = build_controller(config)

        if args.clear_cache:
            controller.sessions.store.clear_all()
            print(f"{Fore.GREEN}Local data cleared.")
            return
        if args.high_score:
            print(f"{Fore.YELLOW}High score: {Fore.WHITE}{controller.high_score}")
            return

        console = GameConsole(controller)
        if args.stats:
            console.show_stats()
            return
        if args.reset:
            controller.sessions.clear_session()
        console.run()
    except KeyboardInterrupt:
        print(f"\n\n{Fore.YELLOW}Interrupted by user. Goodbye!")
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        print(f"\n{Fore.RED}An unexpected error occurred: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
