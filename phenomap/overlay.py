# overlay.py - one cached overlay per configured raster, loaded at most once at a time

# region Imports
from __future__ import annotations
import enum
import logging
import threading
from dataclasses import replace
from typing import Awaitable, Callable, Dict, Optional

from phenomap.config import OVERLAY_SOURCES
from phenomap.decoder import load_overlay
from phenomap.models import DecodedOverlay
from phenomap.raster import Source
# endregion

logger = logging.getLogger(__name__)

Loader = Callable[..., Awaitable[Optional[DecodedOverlay]]]


class OverlayState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


# region Slot
class OverlaySlot:
    """
    Owns the load state of a single overlay. A second load() while one is in
    flight is a no-op returning None, so a background pre-warm and a user
    toggle never decode the same raster twice. FAILED slots decode again on
    the next load().
    """

    def __init__(self, name: str, source: Source, loader: Loader = load_overlay):
        self.name = name
        self.source = source
        self._loader = loader
        self._lock = threading.Lock()
        self.state = OverlayState.IDLE
        self.overlay: Optional[DecodedOverlay] = None
        self.attached = False
        self.loading = False  # spinner flag, caller controlled

    def _set_attached(self, attached: bool) -> None:
        self.attached = attached
        if self.overlay is not None:
            self.overlay.attached = attached

    async def load(self, attach: bool = True, show_spinner: bool = True) -> Optional[DecodedOverlay]:
        with self._lock:
            if self.state is OverlayState.LOADING:
                logger.debug("overlay %s already loading; ignoring request", self.name)
                return None
            if self.state is OverlayState.LOADED:
                if attach:
                    self._set_attached(True)
                return self.overlay
            self.state = OverlayState.LOADING
            self.loading = show_spinner

        overlay = None
        try:
            overlay = await self._loader(self.source, attach=attach)
        finally:
            with self._lock:
                self.loading = False
                if overlay is None:
                    self.state = OverlayState.FAILED
                    self.overlay = None
                    self.attached = False
                else:
                    # Only the rendered PNG and bounds are kept for toggling.
                    self.overlay = replace(overlay, pixels=None)
                    self.state = OverlayState.LOADED
                    self._set_attached(attach)

        if overlay is None:
            logger.warning("overlay %s unavailable; will retry on next request", self.name)
        return self.overlay

    async def toggle(self) -> Optional[DecodedOverlay]:
        with self._lock:
            if self.state is OverlayState.LOADED:
                self._set_attached(not self.attached)
                return self.overlay
        return await self.load(attach=True)

    def snapshot(self) -> dict:
        doc = {"name": self.name, "state": self.state.value,
               "attached": self.attached, "loading": self.loading}
        if self.overlay is not None:
            doc.update({"bounds": self.overlay.bounds.to_dict(),
                        "width": self.overlay.width, "height": self.overlay.height})
        return doc
# endregion


# region Registry
class OverlayRegistry:
    def __init__(self, sources: Optional[Dict[str, Source]] = None, loader: Loader = load_overlay):
        sources = OVERLAY_SOURCES if sources is None else sources
        self._slots = {name: OverlaySlot(name, src, loader=loader) for name, src in sources.items()}

    def __contains__(self, name: str) -> bool:
        return name in self._slots

    def __getitem__(self, name: str) -> OverlaySlot:
        return self._slots[name]

    def names(self):
        return sorted(self._slots)
# endregion
