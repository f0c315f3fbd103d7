"""
Media discovery for mediascope.

- classify: URL bucketing (video/audio/hls/dash) and quality ranking
- extractor: MultiSourceExtractor, layered stream URL discovery
- players: PlayerAPIHook and its pluggable probe registry
"""

from mediascope.media.classify import classify_media, rank_by_quality
from mediascope.media.extractor import MultiSourceExtractor, StreamCandidate, StreamSet
from mediascope.media.players import PlayerAPIHook, PlayerProbe, PlayerProbeRegistry

__all__ = [
    "classify_media",
    "rank_by_quality",
    "MultiSourceExtractor",
    "StreamCandidate",
    "StreamSet",
    "PlayerAPIHook",
    "PlayerProbe",
    "PlayerProbeRegistry",
]
