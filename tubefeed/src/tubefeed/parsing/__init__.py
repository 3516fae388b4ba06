"""
Parsers for upstream documents.

- Channel feeds (Atom) into FeedItem records
- Search-result pages into ChannelSummary records
- Short-form title heuristics
"""

from .feed import FeedParser
from .search import ChannelSearchParser, SearchParseResult
from .shorts import ShortFormPredicate, get_heuristic, is_likely_short

__all__ = [
    "FeedParser",
    "ChannelSearchParser",
    "SearchParseResult",
    "ShortFormPredicate",
    "get_heuristic",
    "is_likely_short",
]
