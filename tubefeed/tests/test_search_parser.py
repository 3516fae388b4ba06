"""
Tests for the channel search-result parser.

Tests:
- Channel summary extraction and defaults
- Result bound
- Defensive traversal and failure results
"""

import pytest

from tubefeed.errors import ParseFailure
from tubefeed.parsing.search import ChannelSearchParser, MAX_RESULTS


def renderer(n: int, **overrides) -> dict:
    data = {
        "channelId": f"UC{n:022d}",
        "title": {"simpleText": f"Channel {n}"},
        "subscriberCountText": {"simpleText": f"{n}K subscribers"},
        "thumbnail": {"thumbnails": [{"url": f"//yt3.ggpht.com/avatar{n}=s88"}]},
    }
    data.update(overrides)
    return data


class TestChannelSearchParser:
    """Tests for ChannelSearchParser.parse."""

    def test_extracts_channel_summaries(self, search_page):
        page = search_page([renderer(1), renderer(2)])

        result = ChannelSearchParser().parse(page)

        assert result.ok
        assert [c.channel_id for c in result.channels] == [f"UC{1:022d}", f"UC{2:022d}"]
        first = result.channels[0]
        assert first.channel_name == "Channel 1"
        assert first.subscriber_count_label == "1K subscribers"
        assert first.thumbnail_url == "https://yt3.ggpht.com/avatar1=s88"

    def test_defaults_for_missing_optional_fields(self, search_page):
        bare = {"channelId": "UC" + "x" * 22, "title": {"runs": [{"text": "Bare "}, {"text": "Channel"}]}}

        result = ChannelSearchParser().parse(search_page([bare]))

        summary = result.unwrap()[0]
        assert summary.channel_name == "Bare Channel"
        assert summary.subscriber_count_label == "N/A"
        assert summary.thumbnail_url is None

    def test_bounded_to_ten(self, search_page):
        page = search_page([renderer(n) for n in range(15)])

        channels = ChannelSearchParser().parse(page).unwrap()

        assert len(channels) == MAX_RESULTS == 10
        assert channels[-1].channel_id == f"UC{9:022d}"

    def test_skips_non_channel_results(self, search_page):
        page = search_page(
            [renderer(1)],
            extra_items=[{"videoRenderer": {"videoId": "abc"}}, {"channelRenderer": {"title": {}}}],
        )

        channels = ChannelSearchParser().parse(page).unwrap()

        assert len(channels) == 1

    def test_empty_result_is_not_an_error(self, search_page):
        result = ChannelSearchParser().parse(search_page([]))

        assert result.ok
        assert result.channels == []

    def test_missing_intermediate_structure_yields_empty(self):
        page = '<html><body><script>var ytInitialData = {"contents": {"other": 1}};</script></body></html>'

        result = ChannelSearchParser().parse(page)

        assert result.ok
        assert result.channels == []

    def test_missing_marker_is_a_failure(self):
        result = ChannelSearchParser().parse("<html><body><p>captcha</p></body></html>")

        assert not result.ok
        assert "marker" in result.error
        with pytest.raises(ParseFailure):
            result.unwrap()

    def test_undecodable_blob_is_a_failure(self):
        page = "<html><body><script>var ytInitialData = {not json;</script></body></html>"

        result = ChannelSearchParser().parse(page)

        assert not result.ok
