"""
Unit tests for the custom exception hierarchy.

Validates exception creation, inheritance, attribute storage, and the
payload soft tools return.
"""

import pytest

from mediascope.exceptions import (
    BrowserLaunchError,
    BrowserTimeoutError,
    DownloadError,
    ElementNotFoundError,
    ExecutionError,
    FrameNotFoundError,
    InvalidArgumentError,
    MediascopeError,
    NoFrameSelectedError,
    NotInitializedError,
)


class TestMediascopeError:
    """Tests for the base exception class."""

    def test_basic_creation(self):
        err = MediascopeError("something broke")
        assert str(err) == "something broke"
        assert err.details == {}

    def test_with_details(self):
        err = MediascopeError("oops", details={"code": 42})
        assert err.details["code"] == 42

    def test_to_dict(self):
        """Payload carries message, type name, and details."""
        payload = MediascopeError("oops", details={"code": 42}).to_dict()
        assert payload == {"error": "oops", "error_type": "MediascopeError", "code": 42}

    @pytest.mark.parametrize("cls", [
        NotInitializedError,
        BrowserLaunchError,
        BrowserTimeoutError,
        ElementNotFoundError,
        FrameNotFoundError,
        NoFrameSelectedError,
        DownloadError,
        ExecutionError,
        InvalidArgumentError,
    ])
    def test_taxonomy_inherits_base(self, cls):
        assert issubclass(cls, MediascopeError)


class TestSessionErrors:
    """Tests for session lifecycle errors."""

    def test_not_initialized_default_message(self):
        err = NotInitializedError()
        assert "browser_init" in str(err)

    def test_launch_error_stores_headless(self):
        err = BrowserLaunchError("no chromium", headless=True)
        assert err.headless is True


class TestResolutionErrors:
    """Tests for element and frame resolution errors."""

    def test_element_not_found_stores_tried(self):
        err = ElementNotFoundError("missing", selector="#a", tried=["#a", "video"])
        assert err.selector == "#a"
        assert err.tried == ["#a", "video"]

    def test_element_not_found_payload_lists_tried(self):
        """Soft tools report which selectors were attempted."""
        payload = ElementNotFoundError("missing", selector="#a", tried=["#a"]).to_dict()
        assert payload["tried"] == ["#a"]
        assert payload["selector"] == "#a"

    def test_frame_not_found_stores_index(self):
        err = FrameNotFoundError("nope", index=7)
        assert err.index == 7
        assert err.selector is None

    def test_payload_omits_none_attributes(self):
        payload = FrameNotFoundError("nope", index=7).to_dict()
        assert "selector" not in payload

    def test_no_frame_selected_default_message(self):
        assert "iframe_handler" in str(NoFrameSelectedError())


class TestOtherErrors:
    """Tests for timeout, download, and script errors."""

    def test_timeout_stores_budget(self):
        err = BrowserTimeoutError("slow", timeout_ms=500, target="#x")
        assert err.timeout_ms == 500
        assert err.target == "#x"

    def test_timeout_does_not_shadow_builtin(self):
        assert not issubclass(BrowserTimeoutError, TimeoutError)

    def test_download_error_lists_strategies(self):
        err = DownloadError("failed", url="https://x/a.mp4", strategies=["interception"])
        assert err.strategies == ["interception"]

    def test_execution_error_stores_script(self):
        assert ExecutionError("bad", script="throw 1").script == "throw 1"

    def test_catchable_as_base(self):
        with pytest.raises(MediascopeError):
            raise InvalidArgumentError("bad action", argument="action")
