"""
Short-form classification heuristics.

Titles are classified as short-form by approximate signals only. The contract
is determinism (same title, same answer), not accuracy, and the predicate is
swappable: parsers take any ``Callable[[str], bool]``.
"""

import re
from typing import Callable, Optional

ShortFormPredicate = Callable[[str], bool]

HASHTAG_PATTERN = re.compile(r"#\w+")

# Pictographic symbol ranges (emoji, dingbats, misc symbols)
PICTOGRAPH_PATTERN = re.compile(
    "["
    "\U0001F000-\U0001F6FF"
    "\U0001F900-\U0001F9FF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "\U0001F300-\U0001F64F"
    "]"
)


def has_hashtag(title: Optional[str]) -> bool:
    """True when the title contains a hashtag token."""
    return bool(title) and HASHTAG_PATTERN.search(title) is not None


def has_pictograph(title: Optional[str]) -> bool:
    """True when the title contains a pictographic symbol."""
    return bool(title) and PICTOGRAPH_PATTERN.search(title) is not None


def is_likely_short(title: Optional[str]) -> bool:
    """Default heuristic: a hashtag or a pictographic symbol in the title."""
    return has_pictograph(title) or has_hashtag(title)


HEURISTICS: dict[str, ShortFormPredicate] = {
    "default": is_likely_short,
    "hashtag": has_hashtag,
    "pictograph": has_pictograph,
}


def get_heuristic(name: str) -> ShortFormPredicate:
    """Look up a named predicate."""
    try:
        return HEURISTICS[name]
    except KeyError:
        raise ValueError(f"Unknown shorts heuristic: {name!r}") from None
