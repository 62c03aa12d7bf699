"""
Tests for the export orchestrator.

Test Coverage:
- Non-slicing and slicing exports (single image vs tile list)
- Worked scenarios: 3 slices, single slice, bad config, failing slice
- Guaranteed release on success and on every failure path
- Suspension point ordering and collaborator contracts
"""

import asyncio
import io

import pytest
from PIL import Image

from panel_export import (
    ConfigError,
    DiagnosticsCollector,
    Document,
    ExportConfig,
    ImageExporter,
    ImageNode,
    Margins,
    PillowRenderer,
    RenderError,
    SliceConfig,
    StagingError,
    export_image,
    export_image_sync,
)

from panel_export import waits

from conftest import make_striped_image, row_color


MARGINS = Margins(top=20, right=20, bottom=100, left=20)


def decode(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data)).convert("RGB")


def make_config(enabled=True, scale=1, **slice_kwargs) -> ExportConfig:
    return ExportConfig(
        background_color="#ffffff",
        scale=scale,
        margins=MARGINS,
        slice=SliceConfig(enabled=enabled, **slice_kwargs),
    )


class RecordingRenderer(PillowRenderer):
    """Pillow renderer that records every request and can fail on demand."""

    def __init__(self, fail_on=None, events=None):
        super().__init__()
        self.fail_on = fail_on
        self.calls = []
        self.events = events if events is not None else []

    async def rasterize(self, node, pixel_width, pixel_height, scale, background_color):
        index = len(self.calls)
        self.calls.append((pixel_width, pixel_height, scale, node.translate_y))
        self.events.append(("rasterize", index))
        if index == self.fail_on:
            raise RuntimeError("renderer crashed")
        return await super().rasterize(node, pixel_width, pixel_height, scale, background_color)


class TestNonSlicingExport:
    """Exports with slicing disabled."""

    def test_returns_single_image(self, document):
        result = asyncio.run(ImageExporter(document).export_image(make_config(enabled=False)))
        
        assert isinstance(result, bytes)
        img = decode(result)
        assert img.size == (440, 20 + 2000 + 100)

    def test_image_has_margins_and_content(self, document):
        result = asyncio.run(ImageExporter(document).export_image(make_config(enabled=False)))
        img = decode(result)
        
        assert img.getpixel((5, 5)) == (255, 255, 255)
        assert img.getpixel((20, 20)) == row_color(0)
        assert img.getpixel((20, 2019)) == row_color(1999)
        assert img.getpixel((20, 2050)) == (255, 255, 255)

    def test_scale_multiplies_pixel_size(self, document):
        renderer = RecordingRenderer()
        config = make_config(enabled=False, scale=2)
        
        result = asyncio.run(ImageExporter(document, renderer).export_image(config))
        
        assert renderer.calls == [(880, 4240, 2, 0)]
        assert decode(result).size == (880, 4240)

    def test_explicit_output_width_reflows_content(self, document):
        config = ExportConfig(
            output_width=240,
            scale=1,
            margins=MARGINS,
            slice=SliceConfig(enabled=False),
        )
        result = asyncio.run(ImageExporter(document).export_image(config))
        
        # 400x2000 content laid out at 200px wide becomes 1000px tall
        assert decode(result).size == (240, 20 + 1000 + 100)


class TestSlicingExport:
    """Exports with slicing enabled."""

    def test_scenario_a_three_tiles_in_order(self, document):
        renderer = RecordingRenderer()
        
        result = asyncio.run(ImageExporter(document, renderer).export_image(make_config()))
        
        assert isinstance(result, list)
        assert len(result) == 3
        assert [call[3] for call in renderer.calls] == [0, 740, 1500]

    def test_tiles_overlap_by_redundancy(self, document):
        result = asyncio.run(ImageExporter(document).export_image(make_config()))
        first, second, third = (decode(data) for data in result)
        
        # first tile: top margin then rows [0, 780)
        assert first.size == (440, 800)
        assert first.getpixel((20, 20)) == row_color(0)
        assert first.getpixel((20, 799)) == row_color(779)
        # second tile starts 40 rows before the first one ends
        assert second.size == (440, 800)
        assert second.getpixel((20, 0)) == row_color(740)
        # last tile: remaining content, then margin and background fill
        assert third.size == (440, 800)
        assert third.getpixel((20, 0)) == row_color(1500)
        assert third.getpixel((20, 499)) == row_color(1999)
        assert third.getpixel((20, 500)) == (255, 255, 255)
        assert third.getpixel((20, 799)) == (255, 255, 255)

    def test_tiles_reassemble_without_seams(self, document):
        result = asyncio.run(ImageExporter(document).export_image(make_config()))
        tiles = [decode(data) for data in result]
        starts = [0, 740, 1500]
        
        for y in range(0, 2000, 7):
            index = max(i for i, start in enumerate(starts) if start <= y)
            offset = 20 if index == 0 else 0
            assert tiles[index].getpixel((20, y - starts[index] + offset)) == row_color(y)

    def test_scenario_b_single_tile_list(self, short_document):
        result = asyncio.run(ImageExporter(short_document).export_image(make_config()))
        
        assert isinstance(result, list)
        assert len(result) == 1

    def test_single_tile_matches_non_slicing_dimensions(self, short_document):
        sliced = asyncio.run(ImageExporter(short_document).export_image(make_config()))
        whole = asyncio.run(
            ImageExporter(short_document).export_image(make_config(enabled=False))
        )
        
        assert decode(sliced[0]).size == decode(whole).size
        assert decode(sliced[0]).tobytes() == decode(whole).tobytes()

    def test_zero_redundancy_tiles_abut(self, document):
        renderer = RecordingRenderer()
        config = make_config(slice_height=1000, redundancy_percent=0)
        
        result = asyncio.run(ImageExporter(document, renderer).export_image(config))
        
        # the first tile gives up 20 rows to the top margin
        assert len(result) == 3
        assert [call[3] for call in renderer.calls] == [0, 980, 1980]

    def test_every_tile_requests_slice_height_times_scale(self, document):
        renderer = RecordingRenderer()
        asyncio.run(ImageExporter(document, renderer).export_image(make_config(scale=2)))
        
        assert [(w, h) for w, h, _, _ in renderer.calls] == [(880, 1600)] * 3

    def test_tiles_share_one_size_at_default_scale(self, document):
        renderer = RecordingRenderer()
        result = asyncio.run(ImageExporter(document, renderer).export_image(make_config()))
        
        assert [h for _, h, _, _ in renderer.calls] == [800, 800, 800]
        assert {decode(data).size for data in result} == {(440, 800)}

    def test_single_tile_keeps_whole_content_height(self, short_document):
        renderer = RecordingRenderer()
        asyncio.run(ImageExporter(short_document, renderer).export_image(make_config(scale=2)))
        
        assert renderer.calls == [(880, 2 * (20 + 500 + 100), 2, 0)]

    def test_top_margin_too_tall_for_tile_is_rejected(self):
        with pytest.raises(ConfigError, match="top margin"):
            ExportConfig(
                margins=Margins(top=760),
                slice=SliceConfig(slice_height=800, redundancy_percent=5),
            )


class TestFailures:
    """Error kinds and guaranteed release."""

    def test_scenario_c_config_error_before_staging(self, document):
        with pytest.raises(ConfigError):
            make_config(redundancy_percent=100)
        assert document.staged_nodes == ()

    def test_scenario_d_failing_slice_aborts_export(self, document):
        renderer = RecordingRenderer(fail_on=1)
        
        with pytest.raises(RenderError) as exc_info:
            asyncio.run(ImageExporter(document, renderer).export_image(make_config()))
        
        error = exc_info.value
        assert (error.slice_index, error.slice_count) == (1, 3)
        assert isinstance(error.__cause__, RuntimeError)
        assert "renderer crashed" in str(error)
        assert len(renderer.calls) == 2
        assert document.staged_nodes == ()

    def test_non_slicing_render_failure_reports_single_slice(self, document):
        renderer = RecordingRenderer(fail_on=0)
        
        with pytest.raises(RenderError) as exc_info:
            asyncio.run(ImageExporter(document, renderer).export_image(make_config(enabled=False)))
        
        assert (exc_info.value.slice_index, exc_info.value.slice_count) == (0, 1)
        assert document.staged_nodes == ()

    def test_missing_content_raises_staging_error(self):
        document = Document()
        with pytest.raises(StagingError, match="not found"):
            asyncio.run(ImageExporter(document).export_image(make_config()))
        assert document.staged_nodes == ()

    def test_resource_wait_failure_still_releases(self, document):
        async def broken_wait(node):
            raise OSError("font server down")
        
        with pytest.raises(OSError):
            asyncio.run(
                ImageExporter(document, wait_for_resources=broken_wait).export_image(make_config())
            )
        assert document.staged_nodes == ()

    def test_cancellation_still_releases(self, document):
        async def run():
            started = asyncio.Event()
            
            async def hanging_wait(node):
                started.set()
                await asyncio.Event().wait()
            
            exporter = ImageExporter(document, wait_for_resources=hanging_wait)
            task = asyncio.ensure_future(exporter.export_image(make_config()))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        
        asyncio.run(run())
        assert document.staged_nodes == ()

    @pytest.mark.parametrize("fail_on", [0, 1, 2])
    def test_no_staged_nodes_remain_after_any_failure(self, document, fail_on):
        renderer = RecordingRenderer(fail_on=fail_on)
        with pytest.raises(RenderError):
            asyncio.run(ImageExporter(document, renderer).export_image(make_config()))
        assert document.staged_nodes == ()

    def test_no_staged_nodes_remain_after_success(self, document):
        asyncio.run(ImageExporter(document).export_image(make_config()))
        assert document.staged_nodes == ()


class TestSuspensionPoints:
    """Collaborator ordering and contracts."""

    def test_stability_wait_runs_before_measurement(self, striped_image):
        document = Document()
        
        async def stable():
            # content appears only once layout has settled
            document.add(ImageNode("output", striped_image))
        
        result = asyncio.run(
            ImageExporter(document, wait_for_stable=stable).export_image(make_config())
        )
        assert len(result) == 3

    def test_resources_awaited_before_every_capture(self, document):
        events = []
        renderer = RecordingRenderer(events=events)
        
        async def resources(node):
            events.append(("resources", node.translate_y))
        
        asyncio.run(
            ImageExporter(document, renderer, wait_for_resources=resources).export_image(make_config())
        )
        
        assert events == [
            ("resources", 0),
            ("resources", 0),
            ("rasterize", 0),
            ("resources", 740),
            ("rasterize", 1),
            ("resources", 1500),
            ("rasterize", 2),
        ]

    def test_default_resource_wait_is_module_barrier(self, document):
        exporter = ImageExporter(document)
        assert exporter._wait_for_resources is waits.wait_for_resources

    def test_default_resource_wait_runs_node_loaders(self):
        loaded = []
        
        async def load_font():
            loaded.append("font")
        
        async def load_broken_image():
            loaded.append("image")
            raise OSError("404")
        
        node = ImageNode(
            "output",
            make_striped_image(100, 100),
            resources=[load_font, load_broken_image],
        )
        result = asyncio.run(
            ImageExporter(Document([node])).export_image(make_config(enabled=False))
        )
        
        assert isinstance(result, bytes)
        # once after staging, once before the capture
        assert loaded.count("font") == 2
        assert loaded.count("image") == 2


class TestDiagnostics:
    """Diagnostics sink receives pipeline events."""

    def test_events_recorded_in_pipeline_order(self, document):
        collector = DiagnosticsCollector()
        
        asyncio.run(ImageExporter(document, diagnostics=collector).export_image(make_config()))
        
        assert collector.names() == [
            "measured",
            "staged",
            "planned",
            "captured",
            "captured",
            "captured",
            "released",
        ]
        measured = collector.find("measured")[0].fields
        assert (measured["natural_width"], measured["natural_height"]) == (400, 2000)
        assert collector.find("planned")[0].fields["slice_count"] == 3

    def test_released_recorded_on_failure(self, document):
        collector = DiagnosticsCollector()
        with pytest.raises(RenderError):
            asyncio.run(
                ImageExporter(document, RecordingRenderer(fail_on=0), diagnostics=collector)
                .export_image(make_config())
            )
        assert collector.names()[-1] == "released"
        assert "captured" not in collector.names()


class TestFunctionalEntryPoints:
    """export_image() and export_image_sync()."""

    def test_export_image_defaults(self, document):
        result = asyncio.run(export_image(document))
        # default config: 2x scale, slicing on
        assert len(result) == 3
        assert decode(result[0]).size == (880, 1600)

    def test_export_image_sync(self, short_document):
        result = export_image_sync(short_document, make_config(enabled=False))
        assert decode(result).size == (440, 20 + 500 + 100)
