"""
Image Quality Analyzer - Imperative Shell

Owns the rendering surface: a standalone OpenGL context with one
fixed-size off-screen framebuffer. Handles every GPU side effect the
pipeline needs (textures, programs, geometry, draws, readback).

Follows functional core, imperative shell pattern:
- core.py: Pure reductions (testable, predictable)
- This module: GPU operations (side effects, resources, I/O)
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple, Any

import moderngl
import numpy as np

from .core import QUAD_VERTEX_COUNT, REFERENCE_SURFACE_SIZE
from .errors import (
    CompileError,
    ContextBusyError,
    LinkError,
    ResourceCreationError,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Performance Timing Utilities
# ============================================================================

class RenderTimings:
    """Accumulates wall-clock time per named GPU operation"""
    def __init__(self):
        self.totals: Dict[str, float] = {}
        self.counts: Dict[str, int] = {}

    def record(self, operation: str, duration: float):
        self.totals[operation] = self.totals.get(operation, 0.0) + duration
        self.counts[operation] = self.counts.get(operation, 0) + 1

    def get_summary(self) -> Dict[str, Dict[str, float]]:
        """Total, average (ms) and call count per operation"""
        return {
            op: {
                'total_ms': total * 1000,
                'avg_ms': (total / self.counts[op]) * 1000,
                'count': self.counts[op],
            }
            for op, total in self.totals.items()
        }

    def reset(self):
        self.totals.clear()
        self.counts.clear()


@contextmanager
def time_operation(timings: Optional[RenderTimings], operation: str):
    """Time the enclosed block into timings (no-op when timings is None)"""
    if timings is None:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        timings.record(operation, time.perf_counter() - start)


def _shader_error(exc: Exception) -> Exception:
    """Map a moderngl program build failure to CompileError or LinkError

    moderngl reports both through moderngl.Error; the driver log follows
    a "GLSL Compiler failed" or "GLSL Linker failed" header.
    """
    log = str(exc).strip()
    if 'linker failed' in log.lower():
        return LinkError("Shader program failed to link", diagnostic=log)
    return CompileError("Shader failed to compile", diagnostic=log)


# ============================================================================
# Rendering Surface
# ============================================================================

class RenderingContext:
    """GPU rendering surface for the two-pass analysis pipeline

    A single owned resource: one GL context, one framebuffer of fixed
    size. Draws go through session() so no two runs interleave on the
    same surface.

    This is an imperative shell - handles GPU resources and side effects.
    """

    def __init__(
        self,
        width: int = REFERENCE_SURFACE_SIZE[0],
        height: int = REFERENCE_SURFACE_SIZE[1],
        backend: Optional[str] = None,
        enable_timing: bool = False
    ):
        """Create the standalone context and the off-screen framebuffer

        Side effects:
        - Creates OpenGL 3.3 context (no window required)
        - Allocates GPU memory for one RGBA8 framebuffer

        Args:
            width: Surface width in pixels
            height: Surface height in pixels
            backend: Optional glcontext backend name (e.g. 'egl' for
                headless machines); None lets moderngl choose
            enable_timing: Record per-operation timings

        Raises:
            ResourceCreationError: If the context or framebuffer cannot
                be created
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Surface size must be positive, got {width}x{height}")

        self.width = width
        self.height = height
        self.backend = backend
        self.timings = RenderTimings() if enable_timing else None
        self.frames_ended = 0
        self._lock = threading.Lock()
        self._released = False

        context_kwargs: Dict[str, Any] = {'require': 330}
        if backend:
            context_kwargs['backend'] = backend
        try:
            self.ctx = moderngl.create_standalone_context(**context_kwargs)
        except Exception as e:
            # glcontext raises plain Exception/OSError when no display or
            # driver is available
            raise ResourceCreationError(
                "Failed to create standalone OpenGL context", diagnostic=str(e)
            ) from e

        try:
            self.fbo = self.ctx.simple_framebuffer((width, height), components=4)
        except moderngl.Error as e:
            self.ctx.release()
            raise ResourceCreationError(
                f"Failed to allocate {width}x{height} framebuffer", diagnostic=str(e)
            ) from e

        self.fbo.use()
        logger.debug(
            "Rendering context ready: %dx%d, GL %s",
            width, height, self.ctx.info.get('GL_VERSION', '?')
        )

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    # ------------------------------------------------------------------------
    # Exclusive access
    # ------------------------------------------------------------------------

    @contextmanager
    def session(self) -> Iterator["RenderingContext"]:
        """Exclusive access to the surface for one analysis run

        Raises:
            ContextBusyError: If another session is already active
        """
        if not self._lock.acquire(blocking=False):
            raise ContextBusyError("Rendering context is already running an analysis")
        try:
            self.fbo.use()
            yield self
        finally:
            self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # ------------------------------------------------------------------------
    # Resource creation
    # ------------------------------------------------------------------------

    def create_texture(self, pixels: bytes, width: int, height: int) -> moderngl.Texture:
        """Upload RGBA8 pixels as a texture (linear filter, clamp-to-edge)

        Side effects:
        - Allocates GPU memory and copies pixel data

        Raises:
            ResourceCreationError: If the texture cannot be allocated
        """
        with time_operation(self.timings, 'create_texture'):
            try:
                texture = self.ctx.texture((width, height), 4, pixels)
            except moderngl.Error as e:
                raise ResourceCreationError(
                    f"Failed to create {width}x{height} texture", diagnostic=str(e)
                ) from e

            texture.filter = (moderngl.LINEAR, moderngl.LINEAR)
            texture.repeat_x = False
            texture.repeat_y = False
            return texture

    def compile_program(self, vertex_src: str, fragment_src: str) -> moderngl.Program:
        """Compile both stages and link them into a program

        Raises:
            CompileError: If either stage fails to compile
            LinkError: If the stages fail to link
        """
        with time_operation(self.timings, 'compile_program'):
            try:
                return self.ctx.program(
                    vertex_shader=vertex_src,
                    fragment_shader=fragment_src
                )
            except moderngl.Error as e:
                raise _shader_error(e) from e

    def create_geometry(self, vertices: np.ndarray) -> moderngl.Buffer:
        """Upload static vertex data

        Raises:
            ResourceCreationError: If the buffer cannot be allocated
        """
        try:
            return self.ctx.buffer(np.ascontiguousarray(vertices, dtype='f4').tobytes())
        except moderngl.Error as e:
            raise ResourceCreationError("Failed to create vertex buffer", diagnostic=str(e)) from e

    # ------------------------------------------------------------------------
    # Drawing and readback
    # ------------------------------------------------------------------------

    def draw(
        self,
        program: moderngl.Program,
        geometry: moderngl.Buffer,
        uniforms: Optional[Dict[str, Any]] = None,
        textures: Optional[Dict[int, moderngl.Texture]] = None
    ) -> None:
        """Draw the full-screen quad with a program into the framebuffer

        The shared geometry buffer is bound to this program's own
        in_position / in_texcoord locations; attribute indices may differ
        between programs, so each draw builds its own vertex array.

        Side effects:
        - Binds textures to their units
        - Renders to the framebuffer

        Args:
            program: Linked shader program
            geometry: Quad buffer of (x, y, u, v) float32 vertices
            uniforms: Uniform name -> value; names the program does not
                declare (or the driver optimized out) are skipped
            textures: Texture unit -> texture

        Raises:
            ResourceCreationError: If the vertex array cannot be created
        """
        with time_operation(self.timings, 'draw'):
            try:
                vao = self.ctx.vertex_array(
                    program,
                    [(geometry, '2f 2f', 'in_position', 'in_texcoord')]
                )
            except (moderngl.Error, KeyError) as e:
                raise ResourceCreationError(
                    "Failed to bind quad geometry to program", diagnostic=str(e)
                ) from e

            try:
                for unit, texture in (textures or {}).items():
                    texture.use(location=unit)

                for name, value in (uniforms or {}).items():
                    try:
                        member = program[name]
                    except KeyError:
                        logger.debug("Uniform %s not active in program, skipped", name)
                        continue
                    member.value = value

                self.fbo.use()
                vao.render(moderngl.TRIANGLES, vertices=QUAD_VERTEX_COUNT)
            finally:
                vao.release()

    def clear(self, color: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)) -> None:
        """Clear the framebuffer to a solid color"""
        self.fbo.use()
        self.fbo.clear(*color)

    def flush(self) -> None:
        """Block until all issued GPU commands have completed"""
        with time_operation(self.timings, 'flush'):
            self.ctx.finish()

    def read_pixels(
        self,
        x: int = 0,
        y: int = 0,
        width: Optional[int] = None,
        height: Optional[int] = None
    ) -> np.ndarray:
        """Read back a region of the framebuffer

        Rows come back in framebuffer order (bottom row first), which is
        texture row order for the full-screen quad, so no flip is applied.

        Args:
            x, y: Lower-left corner of the region
            width, height: Region size (defaults to the whole surface)

        Returns:
            uint8 array (height, width, 4)
        """
        width = self.width if width is None else width
        height = self.height if height is None else height

        with time_operation(self.timings, 'read_pixels'):
            raw = self.fbo.read(viewport=(x, y, width, height), components=4)
            return np.frombuffer(raw, dtype='u1').reshape((height, width, 4))

    def end_frame(self) -> None:
        """Mark the end of a rendered frame

        A standalone context has nothing to present; finishing the queue
        releases the frame's pending work.
        """
        self.ctx.finish()
        self.frames_ended += 1

    # ------------------------------------------------------------------------
    # Timing and lifecycle
    # ------------------------------------------------------------------------

    def get_timing_summary(self) -> Dict[str, Dict[str, float]]:
        """Per-operation timing summary ({} when timing is disabled)"""
        if self.timings is None:
            return {}
        return self.timings.get_summary()

    def release(self):
        """Release GPU resources

        Side effects:
        - Frees the framebuffer
        - Destroys the OpenGL context
        """
        if self._released:
            return
        self._released = True
        self.fbo.release()
        self.ctx.release()

    cleanup = release

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
