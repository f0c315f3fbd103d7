"""
Media URL classification and quality ranking.

Buckets:
    hls    .m3u8 playlists (or an mpegurl MIME type)
    dash   .mpd manifests (or dash+xml)
    audio  direct audio files (or an audio/* MIME type)
    video  direct video files (or a video/* MIME type)
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, TypeVar

MEDIA_TYPES = ("video", "audio", "hls", "dash")

# Highest resolution first.
QUALITY_ORDER = ["4k", "2160p", "1080p", "720p", "480p", "360p", "240p"]

_HLS_RE = re.compile(r"\.m3u8(?:$|[?#&/])", re.IGNORECASE)
_DASH_RE = re.compile(r"\.mpd(?:$|[?#&/])", re.IGNORECASE)
_VIDEO_RE = re.compile(r"\.(?:mp4|webm|ogg|ogv|mkv|mov|m4v|flv|avi)(?:$|[?#&])", re.IGNORECASE)
_AUDIO_RE = re.compile(r"\.(?:mp3|m4a|aac|wav|flac|oga|opus)(?:$|[?#&])", re.IGNORECASE)

T = TypeVar("T")


def classify_by_extension(url: str) -> Optional[str]:
    """Bucket for `url` judged by its extension alone, or None."""
    if _HLS_RE.search(url):
        return "hls"
    if _DASH_RE.search(url):
        return "dash"
    if _VIDEO_RE.search(url):
        return "video"
    if _AUDIO_RE.search(url):
        return "audio"
    return None


def classify_media(
    url: str,
    mime_type: Optional[str] = None,
    element: Optional[str] = None,
) -> Optional[str]:
    """
    Bucket for a discovered URL.

    The extension decides first; then the declared MIME type; then the
    element the URL came from (a bare <audio> src is audio).
    """
    by_extension = classify_by_extension(url)
    if by_extension == "video" and element == "audio":
        return "audio"
    if by_extension:
        return by_extension
    mime = (mime_type or "").lower()
    if "mpegurl" in mime:
        return "hls"
    if "dash" in mime:
        return "dash"
    if mime.startswith("audio/"):
        return "audio"
    if mime.startswith("video/"):
        return "video"
    if element == "audio":
        return "audio"
    if element == "video":
        return "video"
    return None


def quality_label(url: str) -> Optional[str]:
    """First quality token found in `url` (case-insensitive), if any."""
    lowered = url.lower()
    for token in QUALITY_ORDER:
        if token in lowered:
            return token
    return None


def quality_rank(url: str) -> int:
    """Position of the URL's quality token; unmatched URLs rank last."""
    label = quality_label(url)
    return QUALITY_ORDER.index(label) if label else len(QUALITY_ORDER)


def rank_by_quality(items: Iterable[T], key=lambda item: item) -> list[T]:
    """
    Stable sort, highest quality first.

    `key` maps an item to its URL. Items without a quality token keep
    their relative order after every matched item.
    """
    return sorted(items, key=lambda item: quality_rank(key(item)))
