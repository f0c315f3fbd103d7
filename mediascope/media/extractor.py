"""
Multi-source media stream discovery.

Collects every plausible stream URL reachable from the current page in
three layers, each isolated so one failure never costs the others:

    Layer A  document  <video>/<audio> + <source>, inline <script> text
                       (.m3u8/.mpd URLs), data-* URL hints, onclick text
    Layer B  frames    Layer A inside every frame of a frame-list
                       snapshot, plus well-known player globals and
                       player-container classes
    Layer C  network   every captured request URL, bucketed by extension

Hits are merged by exact `src`; the first occurrence wins and keeps its
layer and discovery method.

Usage:
    extractor = MultiSourceExtractor(page, recorder=manager.recorder)
    result = await extractor.extract()
    result.streams(types=["hls"], best_quality=True)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional, Sequence

from mediascope.browser.config import DEFAULT_PLAYER_CONTAINER_CLASSES
from mediascope.browser.evaluator import RetryableEvaluator
from mediascope.browser.network import NetworkRecorder
from mediascope.media.classify import (
    MEDIA_TYPES,
    classify_by_extension,
    classify_media,
    quality_label,
    rank_by_quality,
)
from mediascope.progress.notifier import ProgressNotifier

logger = logging.getLogger(__name__)

# Player globals and configs name their source without an extension often
# enough that an unclassified hit from them is still treated as video.
_PLAYER_METHODS = frozenset({
    "global_variable", "global_sources", "player_config", "player_container",
})

# Each section is wrapped in its own try/catch so one broken pattern or
# hostile element never empties the whole scan.
DOCUMENT_SCAN_JS = r"""
([containerClasses, probeGlobals]) => {
    const hits = [];
    const errors = [];
    const abs = (u) => { try { return new URL(u, document.baseURI).href; } catch (e) { return u; } };
    const push = (src, method, mime, element, label) => {
        if (typeof src === 'string' && src.trim() && !src.startsWith('blob:') && !src.startsWith('data:')) {
            hits.push({src: abs(src.trim()), method, mime: mime || null, element: element || null, label: label || null});
        }
    };
    const section = (name, fn) => { try { fn(); } catch (e) { errors.push(name + ': ' + e.message); } };

    section('media_elements', () => {
        document.querySelectorAll('video, audio').forEach(el => {
            const tag = el.tagName.toLowerCase();
            push(el.currentSrc || el.getAttribute('src'), tag + '_element', el.getAttribute('type'), tag);
            el.querySelectorAll('source').forEach(s => push(s.getAttribute('src'), 'source_element', s.getAttribute('type'), tag, s.getAttribute('label') || s.getAttribute('size')));
        });
    });

    section('scripts', () => {
        const patterns = [
            /https?:\/\/[^\s"'<>\\]+\.m3u8[^\s"'<>\\]*/gi,
            /https?:\/\/[^\s"'<>\\]+\.mpd[^\s"'<>\\]*/gi,
        ];
        document.querySelectorAll('script:not([src])').forEach(script => {
            const text = script.textContent || '';
            for (const re of patterns) {
                for (const m of text.match(re) || []) push(m, 'script_analysis');
            }
        });
    });

    section('data_attributes', () => {
        const attrs = ['data-video', 'data-src', 'data-url', 'data-stream', 'data-file'];
        const mediaHint = /\.(mp4|webm|m3u8|mpd|mp3|m4a)(\?|#|$)/i;
        document.querySelectorAll(attrs.map(a => '[' + a + ']').join(',')).forEach(el => {
            for (const a of attrs) {
                const v = el.getAttribute(a);
                if (v && mediaHint.test(v)) push(v, 'data_attribute');
            }
        });
    });

    section('inline_handlers', () => {
        const mediaUrl = /https?:\/\/[^\s"'<>\\]+\.(?:mp4|webm|m3u8|mpd|mp3)[^\s"'<>\\]*/gi;
        document.querySelectorAll('[onclick]').forEach(el => {
            for (const m of (el.getAttribute('onclick') || '').match(mediaUrl) || []) push(m, 'inline_handler');
        });
    });

    if (probeGlobals) {
        section('global_variables', () => {
            for (const name of ['videoSrc', 'streamUrl', 'videoUrl', 'hlsUrl', 'dashUrl', 'manifestUrl', 'source']) {
                if (typeof window[name] === 'string') push(window[name], 'global_variable');
            }
        });

        section('global_sources', () => {
            const list = window.sources;
            if (Array.isArray(list)) {
                list.forEach(s => {
                    if (typeof s === 'string') push(s, 'global_sources');
                    else if (s && (s.file || s.src)) push(s.file || s.src, 'global_sources', s.type, null, s.label);
                });
            }
        });

        section('player_config', () => {
            const names = ['playerConfig', 'jwplayerConfig', 'videojsConfig', 'plyrConfig', 'clapprConfig', 'dplayerConfig', 'artplayerConfig'];
            for (const name of names) {
                const cfg = window[name];
                if (!cfg || typeof cfg !== 'object') continue;
                if (typeof cfg.file === 'string') push(cfg.file, 'player_config');
                if (typeof cfg.src === 'string') push(cfg.src, 'player_config');
                if (typeof cfg.url === 'string') push(cfg.url, 'player_config');
                if (cfg.video && typeof cfg.video.url === 'string') push(cfg.video.url, 'player_config');
                if (Array.isArray(cfg.sources)) {
                    cfg.sources.forEach(s => {
                        if (typeof s === 'string') push(s, 'player_config');
                        else if (s && (s.file || s.src)) push(s.file || s.src, 'player_config', s.type, null, s.label);
                    });
                }
            }
        });

        section('player_containers', () => {
            for (const cls of containerClasses) {
                document.querySelectorAll(cls).forEach(c => {
                    c.querySelectorAll('video[src], source[src]').forEach(v => push(v.getAttribute('src'), 'player_container', v.getAttribute('type')));
                    for (const a of ['data-src', 'data-video', 'data-url']) {
                        const v = c.getAttribute(a);
                        if (v) push(v, 'player_container');
                    }
                });
            }
        });
    }

    return {hits, errors};
}
"""


@dataclass
class StreamCandidate:
    src: str
    media_type: str
    discovery_method: str
    layer: str
    frame_url: Optional[str] = None
    frame_index: Optional[int] = None
    quality_label: Optional[str] = None
    mime_type: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "src": self.src,
            "type": self.media_type,
            "method": self.discovery_method,
            "layer": self.layer,
        }
        if self.frame_url is not None:
            entry["frameUrl"] = self.frame_url
            entry["frameIndex"] = self.frame_index
        if self.quality_label:
            entry["quality"] = self.quality_label
        if self.mime_type:
            entry["mimeType"] = self.mime_type
        return entry


class StreamSet:
    """Insertion-ordered candidates, unique by exact `src`."""

    def __init__(self, candidates: Iterable[StreamCandidate] = ()) -> None:
        self._by_src: dict[str, StreamCandidate] = {}
        for candidate in candidates:
            self.add(candidate)

    def add(self, candidate: StreamCandidate) -> bool:
        """Keep `candidate` unless its src was already seen."""
        if candidate.src in self._by_src:
            return False
        self._by_src[candidate.src] = candidate
        return True

    def __iter__(self) -> Iterator[StreamCandidate]:
        return iter(self._by_src.values())

    def __len__(self) -> int:
        return len(self._by_src)

    def __contains__(self, src: object) -> bool:
        return src in self._by_src


@dataclass
class ExtractionResult:
    candidates: StreamSet = field(default_factory=StreamSet)
    errors: list[str] = field(default_factory=list)
    frames_scanned: int = 0
    frames_skipped: int = 0

    def streams(
        self,
        types: Optional[Sequence[str]] = None,
        best_quality: bool = False,
    ) -> list[StreamCandidate]:
        """
        Candidates filtered to `types` (None or "all" keeps every bucket).

        With `best_quality`, the video bucket is ranked by resolution
        token; other buckets keep discovery order.
        """
        wanted = set(MEDIA_TYPES) if not types or "all" in types else set(types)
        selected = [c for c in self.candidates if c.media_type in wanted]
        if not best_quality:
            return selected
        videos = rank_by_quality(
            (c for c in selected if c.media_type == "video"), key=lambda c: c.src,
        )
        others = [c for c in selected if c.media_type != "video"]
        return videos + others

    def by_type(self) -> dict[str, int]:
        counts = {t: 0 for t in MEDIA_TYPES}
        for candidate in self.candidates:
            counts[candidate.media_type] += 1
        return counts


class MultiSourceExtractor:
    """
    Layered stream discovery over a page.

    Args:
        page: Playwright Page.
        recorder: Network recorder whose captured requests feed Layer C.
        evaluator: Runs the scan script in each document.
        notifier: Receives per-layer progress notifications.
        container_classes: Player-container selectors probed in Layer B.
    """

    TOOL_NAME = "stream_extractor"

    def __init__(
        self,
        page: Any,
        recorder: Optional[NetworkRecorder] = None,
        evaluator: Optional[RetryableEvaluator] = None,
        notifier: Optional[ProgressNotifier] = None,
        container_classes: Optional[Sequence[str]] = None,
    ) -> None:
        self.page = page
        self.recorder = recorder
        self.evaluator = evaluator or RetryableEvaluator()
        self.notifier = notifier or ProgressNotifier()
        self.container_classes = list(
            DEFAULT_PLAYER_CONTAINER_CLASSES if container_classes is None else container_classes
        )

    async def extract(self) -> ExtractionResult:
        """Run all three layers; never discards what earlier steps found."""
        result = ExtractionResult()
        layers = (
            ("document", self._scan_document),
            ("frames", self._scan_frames),
            ("network", self._scan_network),
        )
        for name, scan in layers:
            try:
                await scan(result)
            except Exception as e:
                logger.warning(
                    "stream_layer_failed",
                    extra={"layer": name, "error": str(e)},
                )
                result.errors.append(f"{name}: {e}")
            self.notifier.notify(
                self.TOOL_NAME,
                "progress",
                f"Layer {name} done, {len(result.candidates)} streams so far",
                layer=name,
                count=len(result.candidates),
            )
        return result

    # ─── Layers ──────────────────────────────────────────────────────

    async def _scan_document(self, result: ExtractionResult) -> None:
        scan = await self.evaluator.evaluate(
            self.page.main_frame, DOCUMENT_SCAN_JS, [self.container_classes, False],
        )
        self._merge_scan(result, scan, layer="document")

    async def _scan_frames(self, result: ExtractionResult) -> None:
        frames = list(self.page.frames)
        for index, frame in enumerate(frames):
            try:
                if frame.is_detached():
                    raise RuntimeError("frame detached")
                scan = await self.evaluator.evaluate(
                    frame, DOCUMENT_SCAN_JS, [self.container_classes, True],
                )
            except Exception as e:
                # Cross-origin or detached frames contribute nothing.
                result.frames_skipped += 1
                logger.debug(
                    "stream_frame_skipped",
                    extra={"frame_index": index, "error": str(e)},
                )
                continue
            result.frames_scanned += 1
            self._merge_scan(
                result, scan, layer="frame", frame_url=frame.url, frame_index=index,
            )

    async def _scan_network(self, result: ExtractionResult) -> None:
        if self.recorder is None or not (self.recorder.recording or len(self.recorder)):
            return
        for url in self.recorder.request_urls():
            media_type = classify_by_extension(url)
            if media_type is None:
                continue
            result.candidates.add(
                StreamCandidate(
                    src=url,
                    media_type=media_type,
                    discovery_method="network_trace",
                    layer="network",
                    quality_label=quality_label(url),
                )
            )

    @staticmethod
    def _merge_scan(
        result: ExtractionResult,
        scan: Optional[dict[str, Any]],
        layer: str,
        frame_url: Optional[str] = None,
        frame_index: Optional[int] = None,
    ) -> None:
        if not scan:
            return
        for error in scan.get("errors") or []:
            result.errors.append(f"{layer}: {error}")
        for hit in scan.get("hits") or []:
            src = hit.get("src")
            if not src:
                continue
            media_type = classify_media(src, hit.get("mime"), hit.get("element"))
            if media_type is None and hit.get("method") in _PLAYER_METHODS:
                media_type = "video"
            if media_type is None:
                continue
            result.candidates.add(
                StreamCandidate(
                    src=src,
                    media_type=media_type,
                    discovery_method=hit.get("method") or "unknown",
                    layer=layer,
                    frame_url=frame_url,
                    frame_index=frame_index,
                    quality_label=hit.get("label") or quality_label(src),
                    mime_type=hit.get("mime"),
                )
            )
