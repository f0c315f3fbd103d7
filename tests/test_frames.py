"""
Tests for frame enumeration and the current-frame pointer.

Validates:
- list() returns every frame, main frame first
- switch by index and by iframe selector
- Out-of-range index without a selector raises FrameNotFoundError
- content() before any switch raises NoFrameSelectedError
- The pointer is invalidated by detach, main-frame navigation, and exit
"""

from __future__ import annotations

import asyncio

import pytest

from mediascope.browser.frames import FrameContextTracker
from mediascope.exceptions import FrameNotFoundError, NoFrameSelectedError
from mediascope.testing.fake_page import FakeElement, FakeFrame, FakePage, create_fake_manager


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _tracker(page):
    manager = _run(create_fake_manager(page))
    return FrameContextTracker(manager.require_active()), manager


def _page_with_frames():
    ad = FakeFrame(url="https://ads.example/slot", name="ad")
    player = FakeFrame(url="https://cdn.example/embed/1", name="player", html="<video src='a.mp4'></video>")
    page = FakePage(
        url="https://example.com",
        frames=[ad, player],
        elements={"iframe#player": FakeElement(tag="iframe", frame=player)},
    )
    return page, ad, player


class TestFrameListing:
    """Tests for list()."""

    def test_lists_main_frame_first(self):
        page, _, _ = _page_with_frames()
        tracker, _ = _tracker(page)
        frames = tracker.list()
        assert [f["index"] for f in frames] == [0, 1, 2]
        assert frames[0]["url"] == "https://example.com"
        assert frames[2] == {"index": 2, "name": "player", "url": "https://cdn.example/embed/1"}


class TestFrameSwitching:
    """Tests for switch() and content()."""

    def test_switch_by_index(self):
        page, _, player = _page_with_frames()
        tracker, _ = _tracker(page)
        current = _run(tracker.switch(index=2))
        assert current["url"] == player.url
        assert tracker.current() is player

    def test_switch_by_selector(self):
        page, _, player = _page_with_frames()
        tracker, _ = _tracker(page)
        current = _run(tracker.switch(selector="iframe#player"))
        assert current["index"] == 2
        assert tracker.current() is player

    def test_out_of_range_index_without_selector(self):
        """Index 9 on a 3-frame page with no selector fails."""
        page, _, _ = _page_with_frames()
        tracker, _ = _tracker(page)
        with pytest.raises(FrameNotFoundError) as exc_info:
            _run(tracker.switch(index=9))
        assert exc_info.value.index == 9

    def test_out_of_range_index_falls_back_to_selector(self):
        page, _, player = _page_with_frames()
        tracker, _ = _tracker(page)
        _run(tracker.switch(index=9, selector="iframe#player"))
        assert tracker.current() is player

    def test_unknown_selector(self):
        page, _, _ = _page_with_frames()
        tracker, _ = _tracker(page)
        with pytest.raises(FrameNotFoundError):
            _run(tracker.switch(selector="iframe#missing"))

    def test_content_before_switch(self):
        page, _, _ = _page_with_frames()
        tracker, _ = _tracker(page)
        with pytest.raises(NoFrameSelectedError):
            _run(tracker.content())

    def test_content_of_current_frame(self):
        page, _, player = _page_with_frames()
        tracker, _ = _tracker(page)
        _run(tracker.switch(index=2))
        content = _run(tracker.content())
        assert content["url"] == player.url
        assert content["length"] == len(player.html)


class TestFramePointerInvalidation:
    """Tests for automatic invalidation of the current frame."""

    def test_detached_frame_clears_pointer(self):
        """A detached frame is never reported as current."""
        page, _, player = _page_with_frames()
        tracker, _ = _tracker(page)
        _run(tracker.switch(index=2))
        player.detach()

        assert tracker.current() is None
        with pytest.raises(NoFrameSelectedError):
            _run(tracker.content())

    def test_main_frame_navigation_clears_pointer(self):
        page, _, _ = _page_with_frames()
        tracker, _ = _tracker(page)
        _run(tracker.switch(index=1))
        _run(page.goto("https://example.com/next"))
        assert tracker.current() is None

    def test_exit_clears_pointer(self):
        page, _, _ = _page_with_frames()
        tracker, _ = _tracker(page)
        _run(tracker.switch(index=1))
        tracker.exit()
        assert tracker.current() is None

    def test_pointer_shared_through_session(self):
        """A new tracker over the same session sees the same selection."""
        page, _, player = _page_with_frames()
        tracker, manager = _tracker(page)
        _run(tracker.switch(index=2))
        assert FrameContextTracker(manager.require_active()).current() is player
