"""
Channel search-result parser.

The upstream search page embeds its results as a JSON blob assigned to a
well-known variable inside a <script> tag. This module locates that blob,
decodes it and walks the nested result list with guarded lookups, emitting at
most ``limit`` channel summaries.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
import json

from bs4 import BeautifulSoup

from ..errors import ParseFailure
from ..logging_conf import get_logger
from ..models import ChannelSummary

logger = get_logger(__name__)

EMBEDDED_DATA_MARKERS = (
    "var ytInitialData = ",
    'window["ytInitialData"] = ',
)

MAX_RESULTS = 10

_decoder = json.JSONDecoder()


@dataclass
class SearchParseResult:
    """
    Outcome of a search parse: either a channel list or a failure reason.

    An empty channel list is a valid, successful answer.
    """
    channels: list[ChannelSummary] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, channels: list[ChannelSummary]) -> "SearchParseResult":
        return cls(channels=channels)

    @classmethod
    def failure(cls, reason: str) -> "SearchParseResult":
        return cls(error=reason)

    def unwrap(self) -> list[ChannelSummary]:
        """Return the channels, raising ParseFailure for a failed parse."""
        if self.error is not None:
            raise ParseFailure(self.error)
        return self.channels


class ChannelSearchParser:
    """Extracts channel summaries from a raw search-result page."""

    def __init__(self, limit: int = MAX_RESULTS):
        self.limit = limit

    def parse(self, document: str) -> SearchParseResult:
        """
        Parse a search-result document.

        Args:
            document: Raw HTML of the search page

        Returns:
            SearchParseResult with up to ``limit`` channels, or a failure
            when the embedded data block is missing or undecodable
        """
        blob = self._locate_embedded_data(document or "")
        if blob is None:
            logger.warning("search_marker_missing")
            return SearchParseResult.failure("embedded data marker not found")

        try:
            data, _ = _decoder.raw_decode(blob)
        except json.JSONDecodeError as e:
            logger.warning("search_data_undecodable", error=str(e))
            return SearchParseResult.failure(f"embedded data is not valid JSON: {e}")

        channels = self._extract_channels(data)
        logger.debug("search_parsed", channels=len(channels))
        return SearchParseResult.success(channels)

    def _locate_embedded_data(self, document: str) -> Optional[str]:
        """Return the text starting at the embedded JSON, or None."""
        soup = BeautifulSoup(document, "lxml")
        candidates = [script.string for script in soup.find_all("script") if script.string]
        # Raw document as a last resort (e.g. markup the HTML parser mangled)
        candidates.append(document)

        for text in candidates:
            for marker in EMBEDDED_DATA_MARKERS:
                start = text.find(marker)
                if start != -1:
                    return text[start + len(marker):]
        return None

    def _extract_channels(self, data: Any) -> list[ChannelSummary]:
        sections = _dig(
            data,
            "contents",
            "twoColumnSearchResultsRenderer",
            "primaryContents",
            "sectionListRenderer",
            "contents",
        )
        if not isinstance(sections, list):
            return []

        channels: list[ChannelSummary] = []
        for section in sections:
            contents = _dig(section, "itemSectionRenderer", "contents")
            if not isinstance(contents, list):
                continue

            for entry in contents:
                summary = self._parse_channel_renderer(_dig(entry, "channelRenderer"))
                if summary is None:
                    continue
                channels.append(summary)
                if len(channels) >= self.limit:
                    return channels

        return channels

    def _parse_channel_renderer(self, renderer: Any) -> Optional[ChannelSummary]:
        if not isinstance(renderer, dict):
            return None

        channel_id = renderer.get("channelId")
        if not isinstance(channel_id, str) or not channel_id:
            return None

        thumbnail = _dig(renderer, "thumbnail", "thumbnails", 0, "url")
        if isinstance(thumbnail, str) and thumbnail.startswith("//"):
            thumbnail = "https:" + thumbnail
        elif not isinstance(thumbnail, str):
            thumbnail = None

        return ChannelSummary(
            channel_id=channel_id,
            channel_name=_text_of(renderer.get("title")),
            subscriber_count_label=_text_of(renderer.get("subscriberCountText")) or "N/A",
            thumbnail_url=thumbnail,
        )


def _dig(obj: Any, *path) -> Any:
    """Guarded nested lookup: any missing step yields None."""
    for key in path:
        if isinstance(key, int):
            if not isinstance(obj, list) or not -len(obj) <= key < len(obj):
                return None
            obj = obj[key]
        else:
            if not isinstance(obj, dict):
                return None
            obj = obj.get(key)
        if obj is None:
            return None
    return obj


def _text_of(node: Any) -> str:
    """Read a text node in either ``simpleText`` or ``runs`` form."""
    if not isinstance(node, dict):
        return ""
    simple = node.get("simpleText")
    if isinstance(simple, str):
        return simple
    runs = node.get("runs")
    if isinstance(runs, list):
        return "".join(r.get("text", "") for r in runs if isinstance(r, dict))
    return ""
