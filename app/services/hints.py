"""Hint tiers and hint text for the guessing modal."""
import re
from typing import Any, Dict, List, Optional

from ..models import ACTOR, MOVIE, Node

# Tiers unlocked in order.  Release year means something for a movie only.
HINT_TIERS = {
    MOVIE: ('year', 'summary', 'photo'),
    ACTOR: ('summary', 'photo'),
}

REDACTED = '[...]'


def max_hint_level(node_type: str) -> int:
    return len(HINT_TIERS[node_type])


def first_sentence(text: str) -> str:
    return text.split('.')[0] + '.'


def redact(text: str, names: List[str]) -> str:
    """Replace every occurrence of *names* in *text* (case-insensitive)."""
    names = [n for n in names if n]
    if not names:
        return text
    pattern = re.compile('|'.join(re.escape(n) for n in names), re.IGNORECASE)
    return pattern.sub(REDACTED, text)


def thumbnail_url(info: Dict[str, Any]) -> Optional[str]:
    thumb = info.get('thumbnail')
    if isinstance(thumb, dict):
        return thumb.get('source')
    return thumb or None


def summary_hint(node: Node, info: Dict[str, Any], reveal_name: bool) -> Optional[str]:
    """The summary hint: the whole extract in info mode, otherwise the
    first sentence with the node's name and the article title masked."""
    extract = info.get('extract')
    if not extract:
        return None
    if reveal_name:
        return extract
    return redact(first_sentence(extract), [node.name, info.get('title', '')])


def revealed_hints(node: Node, level: int, info: Dict[str, Any],
                   reveal_name: bool = False) -> List[Dict[str, Any]]:
    """Return the hints unlocked at *level* for *node*.

    Each entry is ``{'kind': <tier>, 'value': <str|int|None>}``; ``value``
    is ``None`` when the data could not be fetched.
    """
    hints = []
    for kind in HINT_TIERS[node.type][:level]:
        if kind == 'year':
            value = info.get('year')
        elif kind == 'summary':
            value = summary_hint(node, info, reveal_name)
        else:
            value = thumbnail_url(info)
        hints.append({'kind': kind, 'value': value})
    return hints
