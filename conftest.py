"""
Shared pytest fixtures

GPU tests need a standalone OpenGL 3.3 context. Machines without one skip
those tests instead of failing. Set IMAGE_QUALITY_GL_BACKEND (e.g. 'egl')
to force a glcontext backend on headless machines.
"""

import os

import numpy as np
import pytest

from image_quality import REFERENCE_SURFACE_SIZE, RenderingContext, ResourceCreationError


GL_BACKEND = os.environ.get('IMAGE_QUALITY_GL_BACKEND') or None

# Default (window-system) backend first, then EGL for headless machines
CANDIDATE_BACKENDS = [GL_BACKEND] if GL_BACKEND else [None, 'egl']


def make_context(width: int, height: int) -> RenderingContext:
    """Create a context or skip the calling test when no GPU is usable"""
    failures = []
    for backend in CANDIDATE_BACKENDS:
        try:
            return RenderingContext(width=width, height=height, backend=backend)
        except ResourceCreationError as e:
            failures.append(f"{backend or 'default'}: {e.diagnostic or e.message}")
    pytest.skip("No standalone OpenGL 3.3 context available (" + "; ".join(failures) + ")")


@pytest.fixture
def gpu_context():
    """Reference-size (500x500) rendering context"""
    ctx = make_context(*REFERENCE_SURFACE_SIZE)
    yield ctx
    ctx.release()


@pytest.fixture
def small_context():
    """Small rendering context for fast tests"""
    ctx = make_context(64, 64)
    yield ctx
    ctx.release()


@pytest.fixture
def context_factory():
    """Create contexts of arbitrary size, released after the test"""
    created = []

    def factory(width: int, height: int) -> RenderingContext:
        ctx = make_context(width, height)
        created.append(ctx)
        return ctx

    yield factory
    for ctx in created:
        ctx.release()


# ============================================================================
# Synthetic images
# ============================================================================

def uniform_rgba(width: int, height: int, value: int) -> np.ndarray:
    """Solid gray RGBA image"""
    img = np.full((height, width, 4), value, dtype=np.uint8)
    img[..., 3] = 255
    return img


def checkerboard_rgba(width: int, height: int, cell: int) -> np.ndarray:
    """Black/white checkerboard with square cells of `cell` texels"""
    ys, xs = np.mgrid[0:height, 0:width]
    white = ((xs // cell + ys // cell) % 2).astype(bool)
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[white, :3] = 255
    img[..., 3] = 255
    return img


def split_rgba(width: int, height: int) -> np.ndarray:
    """Left half black, right half white"""
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[:, width // 2:, :3] = 255
    img[..., 3] = 255
    return img


@pytest.fixture
def images():
    """Synthetic image builders"""
    class Builders:
        uniform = staticmethod(uniform_rgba)
        checkerboard = staticmethod(checkerboard_rgba)
        split = staticmethod(split_rgba)
    return Builders
