"""
Player API discovery and control.

Where the stream extractor looks for passive URLs, the hook looks for
objects that can be driven: global player instances, third-party player
libraries, and native media elements. Each kind is a PlayerProbe, a
named in-page function `({action, containerClasses}) => descriptor[]`,
kept in a registry so new runtimes are added by registering a probe.

Every probe runs in every frame of a frame-list snapshot; each
descriptor is tagged with the frame it came from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Sequence

from mediascope.browser.config import DEFAULT_PLAYER_CONTAINER_CLASSES
from mediascope.browser.evaluator import RetryableEvaluator
from mediascope.progress.notifier import ProgressNotifier

logger = logging.getLogger(__name__)

PLAYER_ACTIONS = ("info", "play", "pause", "sources")

# Shared helpers prepended to every probe body.
_PRELUDE = """
const num = (v) => (typeof v === 'number' && isFinite(v)) ? v : null;
const call = (obj, name) => { try { return typeof obj[name] === 'function' ? obj[name]() : undefined; } catch (e) { return undefined; } };
const methodsOf = (obj) => {
    const names = new Set();
    let proto = obj;
    for (let depth = 0; proto && depth < 3; depth++, proto = Object.getPrototypeOf(proto)) {
        for (const k of Object.getOwnPropertyNames(proto)) {
            try { if (typeof obj[k] === 'function' && k !== 'constructor') names.add(k); } catch (e) {}
        }
    }
    return [...names].slice(0, 40);
};
const act = (obj, action) => {
    if ((action === 'play' || action === 'pause') && typeof obj[action] === 'function') {
        try { const r = obj[action](); if (r && r.catch) r.catch(() => {}); return true; } catch (e) { return false; }
    }
    return null;
};
"""


def _probe_script(body: str) -> str:
    return "({action, containerClasses}) => {" + _PRELUDE + body + "}"


GLOBAL_OBJECTS_JS = _probe_script("""
    const out = [];
    for (const name of ['player', 'videoPlayer', 'myPlayer', 'vjsPlayer']) {
        const p = window[name];
        if (!p || typeof p !== 'object') continue;
        const d = call(p, 'getDuration'), pos = call(p, 'getCurrentTime') ?? call(p, 'getPosition');
        const vol = call(p, 'getVolume'), paused = call(p, 'isPaused');
        out.push({
            playerType: 'global:' + name,
            id: name,
            capabilities: methodsOf(p),
            state: {
                duration: num(d ?? p.duration),
                position: num(pos ?? p.currentTime),
                volume: num(vol ?? p.volume),
                paused: typeof (paused ?? p.paused) === 'boolean' ? (paused ?? p.paused) : null,
            },
            sources: action === 'sources' ? (call(p, 'getSources') || p.sources || null) : null,
            actionExecuted: act(p, action),
        });
    }
    return out;
""")

JWPLAYER_JS = _probe_script("""
    if (typeof window.jwplayer !== 'function') return [];
    const p = window.jwplayer();
    if (!p || typeof p.getState !== 'function') {
        return [{playerType: 'jwplayer', id: 'jwplayer', capabilities: [], state: null}];
    }
    return [{
        playerType: 'jwplayer',
        id: p.id || 'jwplayer',
        capabilities: methodsOf(p),
        state: {
            duration: num(call(p, 'getDuration')),
            position: num(call(p, 'getPosition')),
            volume: num(call(p, 'getVolume')),
            paused: call(p, 'getState') !== 'playing',
        },
        sources: action === 'sources' ? (call(p, 'getPlaylist') || null) : null,
        actionExecuted: act(p, action),
    }];
""")

VIDEOJS_JS = _probe_script("""
    if (typeof window.videojs !== 'function') return [];
    const out = [];
    document.querySelectorAll('.video-js').forEach((el, i) => {
        const p = el.player || (window.videojs.getPlayer && window.videojs.getPlayer(el));
        if (!p) return;
        out.push({
            playerType: 'videojs',
            id: el.id || ('videojs-' + i),
            capabilities: methodsOf(p),
            state: {
                duration: num(call(p, 'duration')),
                position: num(call(p, 'currentTime')),
                volume: num(call(p, 'volume')),
                paused: call(p, 'paused') ?? null,
            },
            sources: action === 'sources' ? (call(p, 'currentSources') || null) : null,
            actionExecuted: act(p, action),
        });
    });
    return out;
""")

LIBRARY_GLOBALS_JS = _probe_script("""
    const out = [];
    for (const name of ['Clappr', 'Plyr', 'flowplayer', 'DPlayer', 'Artplayer', 'Hls', 'dashjs', 'shaka']) {
        if (window[name] === undefined) continue;
        out.push({
            playerType: 'library:' + name,
            id: name,
            capabilities: typeof window[name] === 'function' || typeof window[name] === 'object' ? methodsOf(window[name]).slice(0, 20) : [],
            state: null,
            actionExecuted: null,
        });
    }
    return out;
""")

NATIVE_MEDIA_JS = _probe_script("""
    const out = [];
    document.querySelectorAll('video, audio').forEach((el, i) => {
        out.push({
            playerType: 'html5:' + el.tagName.toLowerCase(),
            id: el.id || (el.tagName.toLowerCase() + '-' + i),
            capabilities: ['play', 'pause', 'load'],
            state: {
                src: el.currentSrc || el.src || null,
                duration: num(el.duration),
                position: num(el.currentTime),
                volume: num(el.volume),
                paused: el.paused,
                muted: el.muted,
            },
            sources: action === 'sources'
                ? [...el.querySelectorAll('source')].map(s => ({src: s.src, type: s.type || null}))
                : null,
            actionExecuted: act(el, action),
        });
    });
    return out;
""")

CONTAINERS_JS = _probe_script("""
    const out = [];
    for (const cls of containerClasses) {
        const found = document.querySelectorAll(cls);
        if (found.length) {
            out.push({playerType: 'container:' + cls, id: cls, capabilities: [], state: {count: found.length}});
        }
    }
    return out;
""")


@dataclass(frozen=True)
class PlayerProbe:
    name: str
    script: str


DEFAULT_PROBES = [
    PlayerProbe("global_objects", GLOBAL_OBJECTS_JS),
    PlayerProbe("jwplayer", JWPLAYER_JS),
    PlayerProbe("videojs", VIDEOJS_JS),
    PlayerProbe("library_globals", LIBRARY_GLOBALS_JS),
    PlayerProbe("native_media", NATIVE_MEDIA_JS),
    PlayerProbe("containers", CONTAINERS_JS),
]


class PlayerProbeRegistry:
    """Ordered {name → probe} table."""

    def __init__(self, probes: Sequence[PlayerProbe] = DEFAULT_PROBES) -> None:
        self._probes: dict[str, PlayerProbe] = {}
        for probe in probes:
            self.register(probe)

    def register(self, probe: PlayerProbe) -> None:
        """Add a probe, replacing any probe with the same name."""
        self._probes[probe.name] = probe

    def unregister(self, name: str) -> None:
        self._probes.pop(name, None)

    def __iter__(self) -> Iterator[PlayerProbe]:
        return iter(self._probes.values())

    def __len__(self) -> int:
        return len(self._probes)

    def names(self) -> list[str]:
        return list(self._probes)


@dataclass
class PlayerDescriptor:
    player_type: str
    player_id: str
    frame_index: int
    frame_url: str
    probe: str
    detected: bool = True
    capabilities: list[str] = field(default_factory=list)
    state: Optional[dict[str, Any]] = None
    sources: Any = None
    action_executed: Optional[bool] = None

    @property
    def identity(self) -> tuple[int, str, str]:
        return (self.frame_index, self.player_type, self.player_id)

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "playerType": self.player_type,
            "id": self.player_id,
            "detected": self.detected,
            "probe": self.probe,
            "frameIndex": self.frame_index,
            "frameUrl": self.frame_url,
            "capabilities": self.capabilities,
            "state": self.state,
        }
        if self.sources is not None:
            entry["sources"] = self.sources
        if self.action_executed is not None:
            entry["actionExecuted"] = self.action_executed
        return entry


@dataclass
class PlayerHookResult:
    players: list[PlayerDescriptor] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    frames_scanned: int = 0
    frames_skipped: int = 0
    _seen: set = field(default_factory=set, repr=False)

    def add(self, descriptor: PlayerDescriptor) -> bool:
        if descriptor.identity in self._seen:
            return False
        self._seen.add(descriptor.identity)
        self.players.append(descriptor)
        return True

    @property
    def detected(self) -> bool:
        return bool(self.players)


class PlayerAPIHook:
    """
    Runs every registered probe in every frame.

    Args:
        page: Playwright Page.
        evaluator: Runs each probe.
        registry: Probe table (defaults to DEFAULT_PROBES).
        notifier: Receives per-frame progress notifications.
        container_classes: Passed to probes that look for containers.
    """

    TOOL_NAME = "player_api_hook"

    def __init__(
        self,
        page: Any,
        evaluator: Optional[RetryableEvaluator] = None,
        registry: Optional[PlayerProbeRegistry] = None,
        notifier: Optional[ProgressNotifier] = None,
        container_classes: Optional[Sequence[str]] = None,
    ) -> None:
        self.page = page
        self.evaluator = evaluator or RetryableEvaluator()
        self.registry = registry or PlayerProbeRegistry()
        self.notifier = notifier or ProgressNotifier()
        self.container_classes = list(
            DEFAULT_PLAYER_CONTAINER_CLASSES if container_classes is None else container_classes
        )

    async def run(self, action: str = "info") -> PlayerHookResult:
        """Probe all frames; a failing frame or probe is skipped."""
        result = PlayerHookResult()
        arg = {"action": action, "containerClasses": self.container_classes}

        for index, frame in enumerate(list(self.page.frames)):
            try:
                detached = frame.is_detached()
            except Exception:
                detached = True
            if detached:
                result.frames_skipped += 1
                continue

            result.frames_scanned += 1
            for probe in self.registry:
                try:
                    found = await self.evaluator.evaluate(frame, probe.script, arg)
                except Exception as e:
                    logger.debug(
                        "player_probe_failed",
                        extra={"frame_index": index, "probe": probe.name, "error": str(e)},
                    )
                    result.errors.append(f"frame {index} {probe.name}: {e}")
                    continue
                for raw in found or []:
                    result.add(self._descriptor(raw, probe.name, index, frame.url))

        self.notifier.notify(
            self.TOOL_NAME,
            "progress",
            f"Probed {result.frames_scanned} frames, {len(result.players)} players",
            count=len(result.players),
        )
        return result

    @staticmethod
    def _descriptor(
        raw: dict[str, Any],
        probe: str,
        frame_index: int,
        frame_url: str,
    ) -> PlayerDescriptor:
        return PlayerDescriptor(
            player_type=raw.get("playerType") or probe,
            player_id=str(raw.get("id") or probe),
            frame_index=frame_index,
            frame_url=frame_url,
            probe=probe,
            capabilities=list(raw.get("capabilities") or []),
            state=raw.get("state"),
            sources=raw.get("sources"),
            action_executed=raw.get("actionExecuted"),
        )
