"""
FilmFrenzy application package.

Layered the same way throughout:

  app/models.py       value types (nodes, edges, hint state, game states).
  app/repositories/   pure I/O: the expiring key/value store on disk and the
                      game-session / high-score slots on top of it.
  app/services/       game logic: the discovery graph, hint tiers and the
                      session controller.

``filmfrenzy.py`` is the integration point: it reads the configuration,
builds the store, the lookup client and a :class:`GameController`, and runs
the terminal game loop.
"""
