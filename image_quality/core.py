"""
Image Quality Analyzer - Functional Core

Pure functions for the statistics reducer and the shared geometry.
No side effects, no GPU operations - only calculations.

Follows functional core, imperative shell pattern:
- This module: Pure reductions over pixel buffers (testable, predictable)
- shell.py: GPU operations (side effects, resources, readback)
"""

import numpy as np

from .quality_types import BrightnessStatus


# ============================================================================
# Design Constants
# ============================================================================

# Standard luma weights on (R, G, B)
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

# Average luminance (0-255 scale) bounds, strict comparisons
DARK_LUMINANCE_THRESHOLD = 50.0
LIGHT_LUMINANCE_THRESHOLD = 200.0

# Edge-intensity variance below this is blurry (strict comparison).
# Calibrated against REFERENCE_SURFACE_SIZE; changing the surface size
# changes what the threshold means.
BLUR_VARIANCE_THRESHOLD = 0.005

REFERENCE_SURFACE_SIZE = (500, 500)

QUAD_VERTEX_COUNT = 6
QUAD_STRIDE_FLOATS = 4  # x, y, u, v


# ============================================================================
# Geometry
# ============================================================================

def fullscreen_quad_vertices() -> np.ndarray:
    """Full-screen quad as two triangles with texture coordinates

    Clip space [-1, 1]^2 maps to texture space [0, 1]^2 with texture
    row 0 at v = 0.

    Returns:
        (24,) float32 array: 6 vertices of (x, y, u, v)
    """
    vertices = np.array([
        # x,    y,   u,   v
        -1.0, -1.0, 0.0, 0.0,
         1.0, -1.0, 1.0, 0.0,
        -1.0,  1.0, 0.0, 1.0,
        -1.0,  1.0, 0.0, 1.0,
         1.0, -1.0, 1.0, 0.0,
         1.0,  1.0, 1.0, 1.0,
    ], dtype='f4')
    vertices.flags.writeable = False
    return vertices


# ============================================================================
# Brightness
# ============================================================================

def luma(rgb: np.ndarray) -> np.ndarray:
    """Weighted luma of the last axis (R, G, B[, A])

    Args:
        rgb: Array with at least 3 channels on the last axis

    Returns:
        Array with the last axis reduced, float64, same scale as input
    """
    rgb = np.asarray(rgb, dtype=np.float64)
    r, g, b = LUMA_WEIGHTS
    return r * rgb[..., 0] + g * rgb[..., 1] + b * rgb[..., 2]


def average_luminance(pixels: np.ndarray) -> float:
    """Average luma over every pixel of an RGBA8 buffer

    Args:
        pixels: uint8 array (H, W, 4) or flat RGBA bytes as uint8

    Returns:
        Average luminance on the 0-255 scale
    """
    rgba = np.asarray(pixels).reshape(-1, 4)
    if rgba.shape[0] == 0:
        raise ValueError("Cannot compute luminance of an empty pixel buffer")
    return float(luma(rgba).sum() / rgba.shape[0])


def classify_brightness(avg_luminance: float) -> BrightnessStatus:
    """Classify average luminance

    Examples:
        >>> classify_brightness(49.9)
        <BrightnessStatus.TOO_DARK: 'too_dark'>
        >>> classify_brightness(50.0)
        <BrightnessStatus.NORMAL: 'normal'>
        >>> classify_brightness(200.1)
        <BrightnessStatus.TOO_LIGHT: 'too_light'>
    """
    if avg_luminance < DARK_LUMINANCE_THRESHOLD:
        return BrightnessStatus.TOO_DARK
    if avg_luminance > LIGHT_LUMINANCE_THRESHOLD:
        return BrightnessStatus.TOO_LIGHT
    return BrightnessStatus.NORMAL


# ============================================================================
# Sharpness
# ============================================================================

def edge_variance(pixels: np.ndarray) -> float:
    """Population variance of edge magnitude from a Laplacian render

    The edge pass writes |laplacian| into every color channel, so only the
    red channel is read. Values are normalized to [0, 1] before reducing.

    Args:
        pixels: uint8 array (H, W, 4) or flat RGBA bytes as uint8

    Returns:
        Variance (divide by N) of red / 255
    """
    rgba = np.asarray(pixels).reshape(-1, 4)
    if rgba.shape[0] == 0:
        raise ValueError("Cannot compute variance of an empty pixel buffer")
    values = rgba[:, 0].astype(np.float64) / 255.0
    mean = values.sum() / values.size
    return float(((values - mean) ** 2).sum() / values.size)


def classify_sharpness(variance: float) -> bool:
    """Return True (blurry) when variance is strictly below threshold"""
    return variance < BLUR_VARIANCE_THRESHOLD


# ============================================================================
# CPU Reference
# ============================================================================

def reference_edge_map(rgba: np.ndarray) -> np.ndarray:
    """CPU rendition of the Laplacian fragment shader

    Matches the GPU pass when the surface is the same size as the image
    (texel-aligned sampling). Out-of-range neighbors repeat the border
    texel, as clamp-to-edge addressing does.

    Args:
        rgba: uint8 array (H, W, 3 or 4), row 0 = texture row 0

    Returns:
        float64 array (H, W) of |laplacian| clamped to [0, 1]
    """
    gray = luma(np.asarray(rgba)[..., :3]) / 255.0
    padded = np.pad(gray, 1, mode='edge')
    center = padded[1:-1, 1:-1]
    neighbors = (
        padded[2:, 1:-1] + padded[:-2, 1:-1] +
        padded[1:-1, 2:] + padded[1:-1, :-2]
    )
    return np.clip(np.abs(neighbors - 4.0 * center), 0.0, 1.0)


def edge_map_to_pixels(edges: np.ndarray) -> np.ndarray:
    """Quantize an edge map to the RGBA8 layout the edge pass writes

    Args:
        edges: float array (H, W) in [0, 1]

    Returns:
        uint8 array (H, W, 4): edge in R, G, B and opaque alpha
    """
    value = np.rint(np.clip(edges, 0.0, 1.0) * 255.0).astype(np.uint8)
    alpha = np.full(value.shape, 255, dtype=np.uint8)
    return np.stack([value, value, value, alpha], axis=-1)

