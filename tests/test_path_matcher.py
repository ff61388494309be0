"""Tests for rate limited path selection."""

import pytest

from app.core.path_matcher import PathMatcher


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/api/chat", True),
        ("/api/chat/", True),
        ("/api/chat/stream", True),
        ("/api/chatter", False),
        ("/home", False),
        ("/", False),
    ],
)
def test_prefix_pattern_matches_on_segment_boundary(path: str, expected: bool) -> None:
    assert PathMatcher(["/api/chat"]).matches(path) is expected


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/", True),
        ("/api/chat", True),
        ("/home", True),
        ("/_next/static/chunks/main.js", False),
        ("/_next/image", False),
        ("/favicon.ico", False),
    ],
)
def test_all_paths_except_static_assets(path: str, expected: bool) -> None:
    matcher = PathMatcher(
        include=["/*"],
        exclude=["/_next/static*", "/_next/image*", "/favicon.ico"],
    )
    assert matcher.matches(path) is expected


def test_glob_pattern() -> None:
    matcher = PathMatcher(["/api/*/chat"])

    assert matcher.matches("/api/v1/chat") is True
    assert matcher.matches("/api/chat") is False


def test_empty_include_matches_nothing() -> None:
    assert PathMatcher([]).matches("/api/chat") is False
