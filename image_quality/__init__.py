"""
Image Quality Package

GPU photo quality analysis (brightness + blur) using functional core,
imperative shell pattern.

Modules:
- core: Pure statistics and geometry (luminance, edge variance, quad)
- shaders: GLSL sources for the pass-through and Laplacian passes
- shell: Rendering surface, GPU operations (imperative side effects)
- image_shell: Image decoding (file I/O)
- pipeline: Two-pass orchestrator and entry points
"""

from .core import (
    # Design constants
    LUMA_WEIGHTS,
    DARK_LUMINANCE_THRESHOLD,
    LIGHT_LUMINANCE_THRESHOLD,
    BLUR_VARIANCE_THRESHOLD,
    REFERENCE_SURFACE_SIZE,

    # Geometry
    fullscreen_quad_vertices,

    # Statistics
    luma,
    average_luminance,
    classify_brightness,
    edge_variance,
    classify_sharpness,

    # CPU reference
    reference_edge_map,
    edge_map_to_pixels,
)

from .errors import (
    AnalysisError,
    ResourceCreationError,
    ShaderError,
    CompileError,
    LinkError,
    DecodeError,
    ContextBusyError,
    PipelineStateError,
)

from .quality_types import (
    BrightnessStatus,
    PipelineState,
    SourceImage,
    AnalysisResult,
    AnalysisReport,
)

from .shaders import ShaderSet, DEFAULT_SHADERS

from .shell import RenderingContext

from .image_shell import load_source_image, source_image_from_array

from .pipeline import QualityPipeline, analyze_image, analyze_photo

__all__ = [
    # Core
    'LUMA_WEIGHTS',
    'DARK_LUMINANCE_THRESHOLD',
    'LIGHT_LUMINANCE_THRESHOLD',
    'BLUR_VARIANCE_THRESHOLD',
    'REFERENCE_SURFACE_SIZE',
    'fullscreen_quad_vertices',
    'luma',
    'average_luminance',
    'classify_brightness',
    'edge_variance',
    'classify_sharpness',
    'reference_edge_map',
    'edge_map_to_pixels',

    # Errors
    'AnalysisError',
    'ResourceCreationError',
    'ShaderError',
    'CompileError',
    'LinkError',
    'DecodeError',
    'ContextBusyError',
    'PipelineStateError',

    # Types
    'BrightnessStatus',
    'PipelineState',
    'SourceImage',
    'AnalysisResult',
    'AnalysisReport',

    # Shaders
    'ShaderSet',
    'DEFAULT_SHADERS',

    # Shell
    'RenderingContext',
    'load_source_image',
    'source_image_from_array',

    # Pipeline
    'QualityPipeline',
    'analyze_image',
    'analyze_photo',
]
