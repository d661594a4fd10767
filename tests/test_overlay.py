import asyncio

import numpy as np
from rasterio.transform import from_origin

from phenomap.models import DecodedOverlay, GeoBounds
from phenomap.overlay import OverlayRegistry, OverlaySlot, OverlayState

BOUNDS = GeoBounds(min_lat=0.0, min_lng=0.0, max_lat=1.0, max_lng=1.0)


def _overlay(attach=True):
    return DecodedOverlay(pixels=np.zeros((1, 1, 4), dtype=np.uint8), width=1, height=1,
                          bounds=BOUNDS, png=b"\x89PNG", attached=attach)


class FakeLoader:
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0
        self.gate = None

    async def __call__(self, source, attach=True):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0)
        return result(attach) if callable(result) else result


def test_load_caches_and_releases_pixels():
    loader = FakeLoader([_overlay])
    slot = OverlaySlot("koppen", "x.tif", loader=loader)
    first = asyncio.run(slot.load())
    second = asyncio.run(slot.load())
    assert loader.calls == 1
    assert first is second
    assert first.pixels is None and first.png
    assert slot.state is OverlayState.LOADED
    assert slot.attached and not slot.loading


def test_concurrent_load_is_single_flight():
    loader = FakeLoader([_overlay])
    slot = OverlaySlot("koppen", "x.tif", loader=loader)

    async def scenario():
        loader.gate = asyncio.Event()
        prewarm = asyncio.ensure_future(slot.load(attach=False, show_spinner=False))
        await asyncio.sleep(0)
        assert slot.state is OverlayState.LOADING
        assert not slot.loading
        second = await slot.load(attach=True)
        loader.gate.set()
        return await prewarm, second

    first, second = asyncio.run(scenario())
    assert loader.calls == 1
    assert second is None
    assert first is slot.overlay
    assert not slot.attached


def test_spinner_flag_follows_request():
    loader = FakeLoader([_overlay])
    slot = OverlaySlot("koppen", "x.tif", loader=loader)

    async def scenario():
        loader.gate = asyncio.Event()
        task = asyncio.ensure_future(slot.load(show_spinner=True))
        await asyncio.sleep(0)
        spinning = slot.loading
        loader.gate.set()
        await task
        return spinning

    assert asyncio.run(scenario()) is True
    assert slot.loading is False


def test_failure_then_retry():
    loader = FakeLoader([None, _overlay])
    slot = OverlaySlot("koppen", "x.tif", loader=loader)
    assert asyncio.run(slot.load()) is None
    assert slot.state is OverlayState.FAILED
    assert asyncio.run(slot.load()) is not None
    assert slot.state is OverlayState.LOADED
    assert loader.calls == 2


def test_loader_exception_marks_failed():
    async def boom(source, attach=True):
        raise RuntimeError("kaput")

    slot = OverlaySlot("koppen", "x.tif", loader=boom)
    try:
        asyncio.run(slot.load())
    except RuntimeError:
        pass
    assert slot.state is OverlayState.FAILED
    assert not slot.loading


def test_toggle_attaches_and_detaches():
    loader = FakeLoader([_overlay])
    slot = OverlaySlot("koppen", "x.tif", loader=loader)
    asyncio.run(slot.load(attach=False, show_spinner=False))
    assert not slot.attached
    asyncio.run(slot.toggle())
    assert slot.attached and slot.overlay.attached
    asyncio.run(slot.toggle())
    assert not slot.attached
    assert loader.calls == 1


def test_toggle_loads_idle_slot():
    loader = FakeLoader([_overlay])
    slot = OverlaySlot("koppen", "x.tif", loader=loader)
    assert asyncio.run(slot.toggle()) is not None
    assert slot.attached


def test_snapshot_and_registry():
    registry = OverlayRegistry({"b": "b.tif", "a": "a.tif"}, loader=FakeLoader([_overlay]))
    assert registry.names() == ["a", "b"]
    assert "a" in registry and "zzz" not in registry
    slot = registry["a"]
    assert slot.snapshot() == {"name": "a", "state": "idle", "attached": False, "loading": False}
    asyncio.run(slot.load())
    snap = slot.snapshot()
    assert snap["bounds"] == {"minLat": 0.0, "minLng": 0.0, "maxLat": 1.0, "maxLng": 1.0}


def test_slot_with_real_decoder(make_geotiff):
    data = make_geotiff(np.full((1, 4, 4), 2, dtype=np.uint8), transform=from_origin(5.0, 50.0, 0.5, 0.5))
    slot = OverlaySlot("tiny", data)
    ov = asyncio.run(slot.load())
    assert ov is not None
    assert ov.bounds == GeoBounds(min_lat=48.0, min_lng=5.0, max_lat=50.0, max_lng=7.0)
