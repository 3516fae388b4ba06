"""
Shared fixtures: a controllable clock and upstream document builders.
"""

import json

import pytest


class FakeClock:
    """Manually advanced time source (seconds since epoch)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_feed(channel_id: str, channel_name: str, entries: list[dict]) -> str:
    """Build an Atom document shaped like the upstream channel feed."""
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" '
        'xmlns:media="http://search.yahoo.com/mrss/" xmlns="http://www.w3.org/2005/Atom">',
        f"<id>yt:channel:{channel_id}</id>",
        f"<yt:channelId>{channel_id}</yt:channelId>",
        f"<title>{channel_name}</title>",
        f"<author><name>{channel_name}</name></author>",
    ]
    for entry in entries:
        parts.append("<entry>")
        if entry.get("id") is not None:
            parts.append(f"<id>yt:video:{entry['id']}</id>")
            parts.append(f"<yt:videoId>{entry['id']}</yt:videoId>")
        if entry.get("title") is not None:
            parts.append(f"<title>{entry['title']}</title>")
        if entry.get("published") is not None:
            parts.append(f"<published>{entry['published']}</published>")
        parts.append(f"<author><name>{channel_name}</name></author>")
        parts.append("</entry>")
    parts.append("</feed>")
    return "\n".join(parts)


def build_search_page(channel_renderers: list[dict], extra_items: list[dict] = None) -> str:
    """Build a search-result page with the embedded data blob."""
    contents = [{"channelRenderer": r} for r in channel_renderers] + list(extra_items or [])
    data = {
        "contents": {
            "twoColumnSearchResultsRenderer": {
                "primaryContents": {
                    "sectionListRenderer": {
                        "contents": [{"itemSectionRenderer": {"contents": contents}}]
                    }
                }
            }
        }
    }
    return (
        "<!DOCTYPE html><html><head><title>results</title></head><body>"
        f'<script nonce="abc">var ytInitialData = {json.dumps(data)};</script>'
        "</body></html>"
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def feed_document():
    return build_feed


@pytest.fixture
def search_page():
    return build_search_page
