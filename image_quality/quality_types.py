"""
Image Quality Data Types - Shared Contract

Defines the data passed between the image decoder, the GPU pipeline and
callers (CLI or UI).

Type Hierarchy:
    SourceImage → decoded RGBA8 pixels handed to the pipeline
    AnalysisResult → the two verdicts of a completed run
    AnalysisReport → outcome of any run, completed or aborted
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .errors import AnalysisError, DecodeError


class BrightnessStatus(str, Enum):
    """Brightness verdict derived from average luminance"""
    TOO_DARK = "too_dark"
    NORMAL = "normal"
    TOO_LIGHT = "too_light"


class PipelineState(str, Enum):
    """States of one analysis run, in the order they are reached

    PENDING → UPLOADED → PASS1_RENDERED → PASS1_READ → PASS2_RENDERED
    → PASS2_READ → COMPLETE. Any state except COMPLETE may move to ABORTED.
    """
    PENDING = "pending"
    UPLOADED = "uploaded"
    PASS1_RENDERED = "pass1_rendered"
    PASS1_READ = "pass1_read"
    PASS2_RENDERED = "pass2_rendered"
    PASS2_READ = "pass2_read"
    COMPLETE = "complete"
    ABORTED = "aborted"


@dataclass(frozen=True)
class SourceImage:
    """Decoded image ready for GPU upload

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        pixels: RGBA8 bytes, row 0 first, length width * height * 4
        name: Asset name (diagnostic only)

    Raises:
        DecodeError: If dimensions are not positive or the byte length
            does not match width * height * 4
    """
    width: int
    height: int
    pixels: bytes
    name: str = ""

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise DecodeError(f"Invalid image size {self.width}x{self.height}")
        expected = self.width * self.height * 4
        if len(self.pixels) != expected:
            raise DecodeError(
                f"Pixel data is {len(self.pixels)} bytes, expected {expected} "
                f"for {self.width}x{self.height} RGBA"
            )

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class AnalysisResult:
    """Verdicts of a completed analysis run

    Attributes:
        brightness_status: too_dark, normal or too_light
        is_blurry: True when edge-intensity variance is below threshold
        avg_luminance: Average luma of the pass-through render (0-255 scale)
        edge_variance: Population variance of normalized edge magnitude
    """
    brightness_status: BrightnessStatus
    is_blurry: bool
    avg_luminance: float = 0.0
    edge_variance: float = 0.0

    def describe(self) -> Tuple[str, str]:
        """Human-readable verdict lines (sharpness, brightness)"""
        sharpness = "The image is blurry." if self.is_blurry else "The image is sharp."
        if self.brightness_status is BrightnessStatus.TOO_DARK:
            brightness = "The image is too dark."
        elif self.brightness_status is BrightnessStatus.TOO_LIGHT:
            brightness = "The image is too light."
        else:
            brightness = "The image has normal brightness."
        return (sharpness, brightness)

    def to_dict(self) -> dict:
        return {
            'brightness_status': self.brightness_status.value,
            'is_blurry': self.is_blurry,
            'avg_luminance': self.avg_luminance,
            'edge_variance': self.edge_variance,
        }


@dataclass(frozen=True)
class AnalysisReport:
    """Outcome of one analysis run

    result is set only when state is COMPLETE; error only when ABORTED.
    avg_luminance / edge_variance hold whatever statistics were computed
    before the run ended, so an aborted run after Pass 1 still exposes the
    luminance it measured.
    """
    state: PipelineState
    result: Optional[AnalysisResult] = None
    error: Optional[AnalysisError] = None
    avg_luminance: Optional[float] = None
    edge_variance: Optional[float] = None
    image_name: str = ""

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.COMPLETE and self.result is not None

    def to_dict(self) -> dict:
        data = {
            'state': self.state.value,
            'image': self.image_name,
            'result': self.result.to_dict() if self.result else None,
            'error': None,
        }
        if self.error is not None:
            data['error'] = {
                'code': self.error.code,
                'message': self.error.message,
                'diagnostic': self.error.diagnostic,
            }
        return data
