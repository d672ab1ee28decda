from __future__ import annotations

import threading

import pytest

from reelcast.content.resolver import (
    ResolverGateway,
    Video,
    parse_search_term,
    text_matches,
    widen_search_term,
)


class TestSearchTerms:
    def test_parse_splits_exclusions(self):
        assert parse_search_term("sunset beach -night -") == (["sunset", "beach"], ["night"])

    @pytest.mark.parametrize(
        "term,expected",
        [
            ("sunset", None),
            ("big sunset", "sunset"),
            ("sunset over hills", "sunset"),
            ("sunset -night", "sunset"),
            ("-night", None),
            ("", None),
        ],
    )
    def test_widen(self, term, expected):
        assert widen_search_term(term) == expected

    def test_text_matches_is_case_insensitive(self):
        assert text_matches("Golden SUNSET over the hills", "sunset hills")
        assert not text_matches("sunset at night", "sunset -night")
        assert not text_matches("anything", "-night")


class TestVideo:
    def test_orientation(self):
        assert Video("a", width=1920, height=1080).matches_format("wide")
        assert Video("a", width=1080, height=1920).matches_format("tall")
        assert not Video("a", width=1080, height=1080).matches_format("wide")
        assert not Video("a").matches_format("tall")
        assert Video("a").matches_format("mixed")

    def test_from_flat_record_and_snapshot(self, catalog):
        video = Video.from_dict(catalog[0])
        snapshot = video.to_snapshot()

        assert video.id == "sun-1"
        assert video.creator == {"username": "creator"}
        assert snapshot["post"]["id"] == "sun-1"
        assert snapshot["post"]["attachments"][0]["width"] == 1920
        assert snapshot["post"]["attachments"][0]["encodings"]["md"]["path"].endswith("_md.mp4")
        assert snapshot["profile"] == {"username": "creator"}


class _Recording:
    def __init__(self, videos):
        self.videos = videos
        self.calls = []

    def resolve(self, search_term, count, **kwargs):
        self.calls.append((search_term, count, kwargs))
        return self.videos


class TestResolverGateway:
    def test_passes_block_options_and_truncates(self):
        resolver = _Recording([Video(str(i)) for i in range(5)])
        gateway = ResolverGateway(resolver)
        try:
            videos = gateway.resolve(
                "sunset", 2, mode="newest", video_format="wide", exclude_ids=["x", "y"]
            )
        finally:
            gateway.shutdown()

        assert [v.id for v in videos] == ["0", "1"]
        assert resolver.calls == [
            ("sunset", 2, {"mode": "newest", "video_format": "wide", "exclude_ids": ("x", "y")})
        ]

    def test_empty_term_or_count_short_circuits(self):
        resolver = _Recording([Video("a")])
        gateway = ResolverGateway(resolver)
        try:
            assert gateway.resolve("", 3) == []
            assert gateway.resolve("sunset", 0) == []
        finally:
            gateway.shutdown()
        assert resolver.calls == []

    def test_resolver_exception_degrades_to_empty(self):
        class Broken:
            def resolve(self, *args, **kwargs):
                raise RuntimeError("search backend down")

        gateway = ResolverGateway(Broken())
        try:
            assert gateway.resolve("sunset", 3) == []
        finally:
            gateway.shutdown()

    def test_slow_resolver_times_out(self):
        release = threading.Event()

        class Hanging:
            def resolve(self, *args, **kwargs):
                release.wait(5)
                return [Video("late")]

        gateway = ResolverGateway(Hanging(), timeout_seconds=0.05)
        try:
            assert gateway.resolve("sunset", 3) == []
        finally:
            release.set()
            gateway.shutdown()

    def test_none_result_is_empty(self):
        gateway = ResolverGateway(_Recording(None))
        try:
            assert gateway.resolve("sunset", 3) == []
        finally:
            gateway.shutdown()
