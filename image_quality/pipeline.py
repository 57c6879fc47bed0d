"""
Image Quality Pipeline - Orchestrator

Sequences one analysis run on a RenderingContext:

1. upload                 texture + quad geometry            → UPLOADED
2. render_brightness_pass pass-through draw, flush           → PASS1_RENDERED
3. read_brightness        readback, average luminance        → PASS1_READ
4. render_edge_pass       clear, Laplacian draw, flush       → PASS2_RENDERED
5. read_sharpness         readback, edge-intensity variance  → PASS2_READ
6. finish                 end of frame, AnalysisResult       → COMPLETE

Each step is gated on the previous one. Any AnalysisError moves the run
to ABORTED; run() turns that into an AnalysisReport instead of raising.

Usage:
    from image_quality import RenderingContext, analyze_photo

    with RenderingContext() as ctx:
        report = analyze_photo("photo.jpg", ctx)
        if report.ok:
            print(report.result.describe())
"""

import logging
from typing import Callable, Optional, Union
from pathlib import Path

import moderngl

from .core import (
    average_luminance,
    classify_brightness,
    classify_sharpness,
    edge_variance,
    fullscreen_quad_vertices,
)
from .errors import AnalysisError, PipelineStateError
from .image_shell import load_source_image
from .quality_types import (
    AnalysisReport,
    AnalysisResult,
    BrightnessStatus,
    PipelineState,
    SourceImage,
)
from .shaders import DEFAULT_SHADERS, ShaderSet
from .shell import RenderingContext, time_operation

logger = logging.getLogger(__name__)

TransitionListener = Callable[[PipelineState], None]


class QualityPipeline:
    """Two-pass brightness / sharpness analysis of one image

    Owns every GPU object of the run (texture, both programs, quad
    buffer); none of them outlive it. Create a new pipeline per image.
    """

    def __init__(
        self,
        ctx: RenderingContext,
        shaders: ShaderSet = DEFAULT_SHADERS,
        on_transition: Optional[TransitionListener] = None
    ):
        """
        Args:
            ctx: Rendering surface the passes draw into
            shaders: Vertex and fragment sources for both passes
            on_transition: Called with each new state as it is reached
        """
        self.ctx = ctx
        self.shaders = shaders
        self.on_transition = on_transition
        self.state = PipelineState.PENDING
        self.image_name = ""

        self.texture: Optional[moderngl.Texture] = None
        self.geometry: Optional[moderngl.Buffer] = None
        self.passthrough_program: Optional[moderngl.Program] = None
        self.laplacian_program: Optional[moderngl.Program] = None

        self.avg_luminance: Optional[float] = None
        self.brightness_status: Optional[BrightnessStatus] = None
        self.edge_variance: Optional[float] = None
        self.is_blurry: Optional[bool] = None
        self.result: Optional[AnalysisResult] = None

    # ========================================================================
    # State machine
    # ========================================================================

    def _require(self, expected: PipelineState, step: str):
        if self.state is not expected:
            raise PipelineStateError(
                f"Cannot {step} in state '{self.state.value}', "
                f"expected '{expected.value}'"
            )

    def _advance(self, new_state: PipelineState):
        logger.debug("Pipeline %s → %s", self.state.value, new_state.value)
        self.state = new_state
        if self.on_transition is not None:
            self.on_transition(new_state)

    def abort(self, error: AnalysisError):
        """Move to ABORTED and discard any verdicts"""
        if self.state in (PipelineState.COMPLETE, PipelineState.ABORTED):
            return
        logger.error("Analysis aborted [%s]: %s", error.code, error)
        self.result = None
        self._advance(PipelineState.ABORTED)

    # ========================================================================
    # Steps
    # ========================================================================

    def upload(self, image: SourceImage):
        """Upload the source image as a texture and create the quad buffer"""
        self._require(PipelineState.PENDING, "upload")
        self.image_name = image.name

        with time_operation(self.ctx.timings, 'upload'):
            self.texture = self.ctx.create_texture(image.pixels, image.width, image.height)
            self.geometry = self.ctx.create_geometry(fullscreen_quad_vertices())

        logger.debug("Uploaded %s (%dx%d)", image.name or "<image>", image.width, image.height)
        self._advance(PipelineState.UPLOADED)

    def render_brightness_pass(self):
        """Pass 1: rasterize the texture unmodified"""
        self._require(PipelineState.UPLOADED, "render brightness pass")

        self.passthrough_program = self.ctx.compile_program(
            self.shaders.vertex, self.shaders.passthrough_fragment
        )
        with time_operation(self.ctx.timings, 'pass1_render'):
            self.ctx.draw(
                self.passthrough_program,
                self.geometry,
                uniforms={'u_texture': 0},
                textures={0: self.texture}
            )
            self.ctx.flush()

        self._advance(PipelineState.PASS1_RENDERED)

    def read_brightness(self) -> BrightnessStatus:
        """Read back Pass 1 and classify average luminance"""
        self._require(PipelineState.PASS1_RENDERED, "read brightness")

        pixels = self.ctx.read_pixels()
        self.avg_luminance = average_luminance(pixels)
        self.brightness_status = classify_brightness(self.avg_luminance)

        logger.info("Average luminance (0-255 scale): %.3f", self.avg_luminance)
        logger.info("Brightness status: %s", self.brightness_status.value)
        self._advance(PipelineState.PASS1_READ)
        return self.brightness_status

    def render_edge_pass(self):
        """Pass 2: clear the surface, then draw the Laplacian edge filter"""
        self._require(PipelineState.PASS1_READ, "render edge pass")

        self.ctx.clear((0.0, 0.0, 0.0, 1.0))
        self.laplacian_program = self.ctx.compile_program(
            self.shaders.vertex, self.shaders.laplacian_fragment
        )
        with time_operation(self.ctx.timings, 'pass2_render'):
            self.ctx.draw(
                self.laplacian_program,
                self.geometry,
                uniforms={
                    'u_texture': 0,
                    'u_resolution': (float(self.ctx.width), float(self.ctx.height)),
                },
                textures={0: self.texture}
            )
            self.ctx.flush()

        self._advance(PipelineState.PASS2_RENDERED)

    def read_sharpness(self) -> bool:
        """Read back Pass 2 and classify edge-intensity variance"""
        self._require(PipelineState.PASS2_RENDERED, "read sharpness")

        pixels = self.ctx.read_pixels()
        self.edge_variance = edge_variance(pixels)
        self.is_blurry = classify_sharpness(self.edge_variance)

        logger.info("Variance of Laplacian: %.6f", self.edge_variance)
        logger.info("Is image blurry? %s", "Yes" if self.is_blurry else "No")
        self._advance(PipelineState.PASS2_READ)
        return self.is_blurry

    def finish(self) -> AnalysisResult:
        """Signal end of frame and build the result"""
        self._require(PipelineState.PASS2_READ, "finish")

        self.ctx.end_frame()
        self.result = AnalysisResult(
            brightness_status=self.brightness_status,
            is_blurry=self.is_blurry,
            avg_luminance=self.avg_luminance,
            edge_variance=self.edge_variance,
        )
        logger.debug("Analyzed asset: %s", self.image_name)
        self._advance(PipelineState.COMPLETE)
        return self.result

    def release(self):
        """Release every GPU object this run created"""
        for resource in (
            self.laplacian_program,
            self.passthrough_program,
            self.geometry,
            self.texture,
        ):
            if resource is not None:
                resource.release()
        self.texture = None
        self.geometry = None
        self.passthrough_program = None
        self.laplacian_program = None

    # ========================================================================
    # Whole run
    # ========================================================================

    def report(self, error: Optional[AnalysisError] = None) -> AnalysisReport:
        return AnalysisReport(
            state=self.state,
            result=self.result,
            error=error,
            avg_luminance=self.avg_luminance,
            edge_variance=self.edge_variance,
            image_name=self.image_name,
        )

    def run(self, image: SourceImage) -> AnalysisReport:
        """Run every step in order; errors end the run as ABORTED

        Never raises AnalysisError: failures are logged and reported.
        """
        if self.state is not PipelineState.PENDING:
            error = PipelineStateError(
                f"Pipeline already used (state '{self.state.value}'), "
                "create a new one per image"
            )
            logger.error("Analysis aborted [%s]: %s", error.code, error)
            return AnalysisReport(
                state=PipelineState.ABORTED, error=error, image_name=image.name
            )

        try:
            with self.ctx.session():
                try:
                    self.upload(image)
                    self.render_brightness_pass()
                    self.read_brightness()
                    self.render_edge_pass()
                    self.read_sharpness()
                    self.finish()
                finally:
                    self.release()
        except AnalysisError as e:
            self.abort(e)
            return self.report(error=e)

        return self.report()


# ============================================================================
# Convenience entry points
# ============================================================================

def analyze_image(
    image: SourceImage,
    ctx: Optional[RenderingContext] = None,
    shaders: ShaderSet = DEFAULT_SHADERS,
    on_transition: Optional[TransitionListener] = None
) -> AnalysisReport:
    """Analyze a decoded image

    Args:
        image: Decoded source image
        ctx: Rendering surface; when None a reference-size context is
            created for this call and released afterwards
        shaders: Shader sources (defaults to the built-in pair)
        on_transition: Optional state listener

    Returns:
        AnalysisReport (COMPLETE with result, or ABORTED with error)
    """
    if ctx is not None:
        return QualityPipeline(ctx, shaders, on_transition).run(image)

    try:
        owned = RenderingContext()
    except AnalysisError as e:
        logger.error("Analysis aborted [%s]: %s", e.code, e)
        if on_transition is not None:
            on_transition(PipelineState.ABORTED)
        return AnalysisReport(state=PipelineState.ABORTED, error=e, image_name=image.name)

    with owned:
        return QualityPipeline(owned, shaders, on_transition).run(image)


def analyze_photo(
    uri: Union[str, Path],
    ctx: Optional[RenderingContext] = None,
    shaders: ShaderSet = DEFAULT_SHADERS,
    on_transition: Optional[TransitionListener] = None
) -> AnalysisReport:
    """Decode an image file, then analyze it

    A decode failure ends the run before any GPU work.
    """
    try:
        image = load_source_image(uri)
    except AnalysisError as e:
        logger.error("Analysis aborted [%s]: %s", e.code, e)
        if on_transition is not None:
            on_transition(PipelineState.ABORTED)
        return AnalysisReport(state=PipelineState.ABORTED, error=e, image_name=str(uri))

    return analyze_image(image, ctx, shaders, on_transition)
