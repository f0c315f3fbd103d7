"""
Media discovery MCP tools.

    stream_extractor()  → MultiSourceExtractor: document, frames, network
    player_api_hook()   → PlayerAPIHook: probe registry over every frame

Both always report what they found, with per-layer / per-frame errors
listed alongside instead of failing the call.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from mediascope.exceptions import InvalidArgumentError
from mediascope.mcp.tools.base import browser_tool, dump, resolve_manager
from mediascope.media.classify import MEDIA_TYPES
from mediascope.media.extractor import MultiSourceExtractor
from mediascope.media.players import PLAYER_ACTIONS, PlayerAPIHook, PlayerProbeRegistry

logger = logging.getLogger(__name__)

# Probes registered here are picked up by every player_api_hook call.
probe_registry = PlayerProbeRegistry()


@browser_tool("stream_extractor", soft=True)
async def stream_extractor(
    types: Optional[list[str]] = None,
    quality: str = "all",
    *,
    _manager: Any = None,
) -> str:
    """
    Find media stream URLs on the page, in its frames, and on the network.

    Args:
        types: Any of all, video, audio, hls, dash (default all).
        quality: all (discovery order) or best (video ranked by resolution).
        _manager: Injected SessionManager (for testing/DI).

    Returns:
        JSON string with count, streams, by_type, frames_scanned, errors.
    """
    manager = resolve_manager(_manager)
    session = manager.require_active()
    types = types or ["all"]
    unknown = [t for t in types if t != "all" and t not in MEDIA_TYPES]
    if unknown:
        raise InvalidArgumentError(f"Unknown stream types: {unknown}", argument="types")
    if quality not in ("all", "best"):
        raise InvalidArgumentError(f"Unknown quality: {quality}", argument="quality")

    extractor = MultiSourceExtractor(
        session.page,
        recorder=manager.recorder,
        evaluator=manager.evaluator,
        notifier=manager.notifier,
        container_classes=session.config.player_container_classes,
    )
    result = await extractor.extract()
    streams = result.streams(types, best_quality=quality == "best")

    logger.info(
        "streams_extracted",
        extra={"count": len(streams), "url": session.page.url},
    )
    return dump({
        "success": True,
        "count": len(streams),
        "streams": [s.to_dict() for s in streams],
        "by_type": result.by_type(),
        "frames_scanned": result.frames_scanned,
        "frames_skipped": result.frames_skipped,
        "errors": result.errors,
    })


@browser_tool("player_api_hook", soft=True)
async def player_api_hook(
    action: str = "info",
    *,
    _manager: Any = None,
) -> str:
    """
    Detect media players and optionally drive them.

    Args:
        action: info, play, pause, or sources. play/pause report
            actionExecuted per player; sources adds the player's source list.
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    session = manager.require_active()
    if action not in PLAYER_ACTIONS:
        raise InvalidArgumentError(f"Unknown action: {action}", argument="action")

    hook = PlayerAPIHook(
        session.page,
        evaluator=manager.evaluator,
        registry=probe_registry,
        notifier=manager.notifier,
        container_classes=session.config.player_container_classes,
    )
    result = await hook.run(action)
    return dump({
        "success": True,
        "action": action,
        "detected": result.detected,
        "count": len(result.players),
        "players": [p.to_dict() for p in result.players],
        "frames_scanned": result.frames_scanned,
        "errors": result.errors,
    })
