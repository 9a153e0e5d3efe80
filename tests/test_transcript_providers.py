"""Tests for provider selection and the YouTube, podcast and generic providers."""

from __future__ import annotations

import asyncio
import json

from link_content.core.types import ProviderContext
from link_content.fetch.fetcher import FetchResponse
from link_content.transcript.providers import (
    GenericProvider,
    PodcastProvider,
    ProviderFetchOptions,
    YoutubeProvider,
)
from link_content.transcript.providers.podcast import find_feed_transcript, parse_itunes_duration
from link_content.transcript.providers.youtube import select_caption_track
from link_content.transcript.registry import select_provider


VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
TIMEDTEXT_URL = "https://www.youtube.com/api/timedtext?v=dQw4w9WgXcQ&lang=en"

JSON3_BODY = json.dumps(
    {
        "events": [
            {"tStartMs": 0, "dDurationMs": 1500, "segs": [{"utf8": "Hello"}, {"utf8": " world"}]},
            {"tStartMs": 1500, "dDurationMs": 500, "aAppend": 1},
            {"tStartMs": 65000, "dDurationMs": 1000, "segs": [{"utf8": "Second line"}]},
        ]
    }
)

FEED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:podcast="https://podcastindex.org/namespace/1.0"
     xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Example Show</title>
    <item>
      <title>Episode 1</title>
      <itunes:duration>1:02:03</itunes:duration>
      <enclosure url="https://cdn.example.com/ep1.mp3" type="audio/mpeg" length="1"/>
      <podcast:transcript url="https://cdn.example.com/ep1.txt" type="text/plain"/>
      <podcast:transcript url="https://cdn.example.com/ep1.vtt" type="text/vtt"/>
    </item>
  </channel>
</rss>
"""

VTT_BODY = """WEBVTT

00:00:00.000 --> 00:00:02.000
<v Host>Welcome to the show

00:00:02.000 --> 00:00:04.000
<v Host>Welcome to the show

00:01:05.000 --> 00:01:07.500
Today we talk &amp; listen
"""


def _player_html(player: dict, extra: str = "") -> str:
    return f"<html><script>var ytInitialPlayerResponse = {json.dumps(player)};</script>{extra}</html>"


def _caption_player(tracks: list[dict]) -> dict:
    return {
        "videoDetails": {"videoId": "dQw4w9WgXcQ", "lengthSeconds": "213", "shortDescription": "A video"},
        "captions": {"playerCaptionsTracklistRenderer": {"captionTracks": tracks}},
    }


def _options(fetch, **kwargs):
    return ProviderFetchOptions(fetch=fetch, **kwargs)


def test_select_provider_routes_by_url_and_html():
    assert select_provider(ProviderContext(url=VIDEO_URL)).id == "youtube"
    assert select_provider(ProviderContext(url="https://youtu.be/dQw4w9WgXcQ")).id == "youtube"
    assert select_provider(ProviderContext(url="https://example.com/show", html=FEED_XML)).id == "podcast"
    assert select_provider(ProviderContext(url="https://podcasts.apple.com/us/podcast/x/id1")).id == "podcast"
    assert select_provider(ProviderContext(url="https://cdn.example.com/podcast/ep1.mp3")).id == "generic"
    assert select_provider(ProviderContext(url="https://example.com/article")).id == "generic"


def test_youtube_caption_tracks_json3(fake_fetch):
    html = _player_html(_caption_player([{"baseUrl": TIMEDTEXT_URL, "languageCode": "en"}]))
    fetch = fake_fetch({TIMEDTEXT_URL + "&fmt=json3": JSON3_BODY})

    result = asyncio.run(
        YoutubeProvider().fetch_transcript(
            ProviderContext(url=VIDEO_URL, html=html), _options(fetch, transcript_timestamps=True)
        )
    )

    assert result.source == "captionTracks"
    assert result.text == "Hello world\nSecond line"
    assert result.attempted_providers == ["captionTracks"]
    assert result.metadata.duration_seconds == 213.0
    assert [segment.start_ms for segment in result.segments] == [0, 65000]
    assert fetch.calls == [("GET", TIMEDTEXT_URL + "&fmt=json3")]


def test_youtube_youtubei_endpoint(fake_fetch):
    ytcfg = '<script>ytcfg.set({"INNERTUBE_API_KEY": "KEY", "INNERTUBE_CONTEXT": {"client": {"clientName": "WEB"}}});</script>'
    params = '<script>var x = {"getTranscriptEndpoint":{"params":"PARAMS"}};</script>'
    html = _player_html(_caption_player([]), ytcfg + params)
    endpoint = "https://www.youtube.com/youtubei/v1/get_transcript?key=KEY&prettyPrint=false"
    payload = {
        "actions": [
            {
                "body": {
                    "initialSegments": [
                        {"transcriptSegmentRenderer": {"startMs": "0", "endMs": "2000", "snippet": {"runs": [{"text": "First"}]}}},
                        {"transcriptSegmentRenderer": {"startMs": "2000", "endMs": "4000", "snippet": {"runs": [{"text": "Second"}]}}},
                    ]
                }
            }
        ]
    }
    fetch = fake_fetch({endpoint: FetchResponse(url=endpoint, status_code=200, text=json.dumps(payload))})

    result = asyncio.run(
        YoutubeProvider().fetch_transcript(
            ProviderContext(url=VIDEO_URL, html=html, resource_key="dQw4w9WgXcQ"), _options(fetch)
        )
    )

    assert result.source == "youtubei"
    assert result.text == "First\nSecond"
    assert result.attempted_providers == ["youtubei"]
    assert result.segments is None
    assert fetch.calls == [("POST", endpoint)]
    assert fetch.payloads[0] == {"context": {"client": {"clientName": "WEB"}}, "params": "PARAMS"}


def test_youtube_without_captions_reports_unavailable(fake_fetch):
    html = _player_html({"videoDetails": {"lengthSeconds": "60"}})
    events = []

    result = asyncio.run(
        YoutubeProvider().fetch_transcript(
            ProviderContext(url=VIDEO_URL, html=html), _options(fake_fetch(), on_progress=events.append)
        )
    )

    assert result.text is None
    assert result.source == "unavailable"
    assert result.metadata.reason == "no_transcript_available"
    assert result.attempted_providers == ["captionTracks", "unavailable"]
    assert events and all(event.service == "youtube" for event in events)


def test_youtube_no_auto_mode_skips_generated_captions(fake_fetch):
    html = _player_html(_caption_player([{"baseUrl": TIMEDTEXT_URL, "languageCode": "en", "kind": "asr"}]))
    fetch = fake_fetch({TIMEDTEXT_URL + "&fmt=json3": JSON3_BODY})

    result = asyncio.run(
        YoutubeProvider().fetch_transcript(
            ProviderContext(url=VIDEO_URL, html=html), _options(fetch, youtube_transcript_mode="no-auto")
        )
    )

    assert result.text is None
    assert "No creator captions found" in result.notes
    assert fetch.calls == []


def test_youtube_sends_cookie_credential(fake_fetch):
    html = _player_html(_caption_player([{"baseUrl": TIMEDTEXT_URL, "languageCode": "en"}]))
    seen_headers = []
    inner = fake_fetch({TIMEDTEXT_URL + "&fmt=json3": JSON3_BODY})

    async def fetch(url, **kwargs):
        seen_headers.append(kwargs.get("headers") or {})
        return await inner(url, **kwargs)

    asyncio.run(
        YoutubeProvider().fetch_transcript(
            ProviderContext(url=VIDEO_URL, html=html), _options(fetch, credentials={"youtube_cookie": "SID=abc"})
        )
    )

    assert seen_headers[0]["Cookie"] == "SID=abc"


def test_select_caption_track_prefers_creator_captions():
    tracks = [
        {"baseUrl": "a", "languageCode": "en", "kind": "asr"},
        {"baseUrl": "b", "languageCode": "de"},
        {"baseUrl": "c", "languageCode": "en-GB"},
    ]

    assert select_caption_track(tracks)["baseUrl"] == "c"
    assert select_caption_track(tracks[:2])["baseUrl"] == "b"
    assert select_caption_track(tracks[:1])["baseUrl"] == "a"
    assert select_caption_track(tracks[:1], skip_auto_generated=True) is None


def test_feed_transcript_prefers_vtt_and_reads_duration():
    link = find_feed_transcript(FEED_XML, "https://example.com/feed.xml")

    assert link.url == "https://cdn.example.com/ep1.vtt"
    assert link.type == "text/vtt"
    assert link.duration_seconds == 3723.0


def test_parse_itunes_duration_formats():
    assert parse_itunes_duration("95") == 95.0
    assert parse_itunes_duration("01:35") == 95.0
    assert parse_itunes_duration("") is None
    assert parse_itunes_duration("soon") is None


def test_podcast_feed_transcript(fake_fetch):
    fetch = fake_fetch({"https://cdn.example.com/ep1.vtt": VTT_BODY})

    result = asyncio.run(
        PodcastProvider().fetch_transcript(
            ProviderContext(url="https://example.com/feed.xml", html=FEED_XML),
            _options(fetch, transcript_timestamps=True),
        )
    )

    assert result.source == "podcastTranscript"
    assert result.text == "Welcome to the show\nToday we talk & listen"
    assert result.metadata.kind == "rss_podcast_transcript"
    assert result.metadata.duration_seconds == 3723.0
    assert result.metadata.transcript_url == "https://cdn.example.com/ep1.vtt"
    assert [segment.end_ms for segment in result.segments] == [4000, 67500]


def test_podcast_fetches_feed_when_html_missing(fake_fetch):
    feed_url = "https://example.com/podcast/feed"
    fetch = fake_fetch({feed_url: FEED_XML, "https://cdn.example.com/ep1.vtt": VTT_BODY})

    result = asyncio.run(PodcastProvider().fetch_transcript(ProviderContext(url=feed_url), _options(fetch)))

    assert result.source == "podcastTranscript"
    assert fetch.calls[0] == ("GET", feed_url)


def test_podcast_enclosure_without_transcript_is_unavailable(fake_fetch):
    feed = FEED_XML.replace("podcast:transcript", "podcast:chapters")

    result = asyncio.run(
        PodcastProvider().fetch_transcript(ProviderContext(url="https://example.com/feed.xml", html=feed), _options(fake_fetch()))
    )

    assert result.text is None
    assert result.metadata.reason == "transcription_unavailable"
    assert "not supported" in result.notes


def test_generic_reads_embedded_caption_track(fake_fetch):
    html = '<video src="/v.mp4"><track kind="captions" src="/captions/en.vtt" srclang="en"></video>'
    fetch = fake_fetch({"https://example.com/captions/en.vtt": VTT_BODY})

    result = asyncio.run(
        GenericProvider().fetch_transcript(ProviderContext(url="https://example.com/watch", html=html), _options(fetch))
    )

    assert result.source == "embedded"
    assert result.text.startswith("Welcome to the show")
    assert result.metadata.kind == "video"
    assert result.attempted_providers == ["embedded"]


def test_generic_without_track_is_not_implemented(fake_fetch):
    result = asyncio.run(
        GenericProvider().fetch_transcript(
            ProviderContext(url="https://cdn.example.com/clip.mp4"), _options(fake_fetch())
        )
    )

    assert result.text is None
    assert result.source is None
    assert result.metadata.reason == "not_implemented"
    assert "Media transcription is not supported" in result.notes
