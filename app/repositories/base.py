"""Shared JSON file handling for the FilmFrenzy repositories."""
import json
import logging
import os
import tempfile
from typing import Any


class BaseRepository:
    """One JSON document on disk, read once and rewritten whole.

    Concrete repositories read their document with :meth:`_load` in
    ``__init__``, keep it in memory, and hand it back to :meth:`_save` after
    each change.  A reader never sees a half-written file: the document is
    written next to its target and renamed over it.
    """

    def __init__(self, file_path: str) -> None:
        self._path = file_path
        self._log = logging.getLogger(f'filmfrenzy.repository.{type(self).__name__}')

    @property
    def path(self) -> str:
        return self._path

    def _load(self, default: Any) -> Any:
        """Return the stored document, or *default* when there is none.

        Unreadable JSON and a document of another type than *default* (a
        list where a mapping is expected) both count as "none".
        """
        if not os.path.exists(self._path):
            return default
        try:
            with open(self._path, 'r') as fh:
                data = json.load(fh)
        except (json.JSONDecodeError, IOError) as exc:
            self._log.warning("Could not load %s: %s", self._path, exc)
            return default
        if not isinstance(data, type(default)):
            self._log.warning("Ignoring %s: expected %s, found %s",
                              self._path, type(default).__name__, type(data).__name__)
            return default
        return data

    def _save(self, data: Any) -> None:
        """Replace the stored document with *data*.

        Raises:
            OSError: the temporary file could not be written or renamed; it
                is removed and the previous document stays in place.
        """
        target_dir = os.path.dirname(os.path.abspath(self._path))
        fd, tmp_path = tempfile.mkstemp(dir=target_dir, prefix='.filmfrenzy-', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
