"""
Tests for image quality data types and errors
"""

import pytest

from image_quality.errors import (
    AnalysisError,
    CompileError,
    DecodeError,
    LinkError,
    ResourceCreationError,
    ShaderError,
)
from image_quality.quality_types import (
    AnalysisReport,
    AnalysisResult,
    BrightnessStatus,
    PipelineState,
    SourceImage,
)


class TestSourceImage:

    def test_valid(self):
        image = SourceImage(width=2, height=3, pixels=bytes(2 * 3 * 4), name="a.png")
        assert image.size == (2, 3)

    def test_is_frozen(self):
        image = SourceImage(width=1, height=1, pixels=bytes(4))
        with pytest.raises(AttributeError):
            image.width = 2

    @pytest.mark.parametrize("width,height", [(0, 1), (1, 0), (-1, 4)])
    def test_non_positive_size(self, width, height):
        with pytest.raises(DecodeError):
            SourceImage(width=width, height=height, pixels=b"")

    def test_wrong_byte_length(self):
        with pytest.raises(DecodeError, match="expected 16"):
            SourceImage(width=2, height=2, pixels=bytes(12))


class TestAnalysisResult:

    @pytest.mark.parametrize("status,blurry,expected", [
        (BrightnessStatus.TOO_DARK, True,
         ("The image is blurry.", "The image is too dark.")),
        (BrightnessStatus.TOO_LIGHT, False,
         ("The image is sharp.", "The image is too light.")),
        (BrightnessStatus.NORMAL, False,
         ("The image is sharp.", "The image has normal brightness.")),
    ])
    def test_describe(self, status, blurry, expected):
        assert AnalysisResult(status, blurry).describe() == expected

    def test_to_dict(self):
        result = AnalysisResult(BrightnessStatus.NORMAL, False, 120.5, 0.02)
        assert result.to_dict() == {
            'brightness_status': 'normal',
            'is_blurry': False,
            'avg_luminance': 120.5,
            'edge_variance': 0.02,
        }


class TestAnalysisReport:

    def test_complete_report(self):
        result = AnalysisResult(BrightnessStatus.NORMAL, True)
        report = AnalysisReport(PipelineState.COMPLETE, result=result, image_name="x.jpg")

        assert report.ok
        data = report.to_dict()
        assert data['state'] == 'complete'
        assert data['image'] == 'x.jpg'
        assert data['result']['is_blurry'] is True
        assert data['error'] is None

    def test_aborted_report(self):
        error = CompileError("Shader failed to compile", diagnostic="0:1: error")
        report = AnalysisReport(PipelineState.ABORTED, error=error, avg_luminance=80.0)

        assert not report.ok
        data = report.to_dict()
        assert data['result'] is None
        assert data['error'] == {
            'code': 'shader_compile_error',
            'message': 'Shader failed to compile',
            'diagnostic': '0:1: error',
        }


class TestErrors:

    def test_hierarchy(self):
        assert issubclass(CompileError, ShaderError)
        assert issubclass(LinkError, ShaderError)
        for cls in (ShaderError, ResourceCreationError, DecodeError):
            assert issubclass(cls, AnalysisError)

    def test_codes_are_distinct(self):
        codes = {cls.code for cls in (CompileError, LinkError, ResourceCreationError, DecodeError)}
        assert len(codes) == 4

    def test_str_includes_diagnostic(self):
        error = LinkError("Shader program failed to link", diagnostic="missing output")
        assert str(error) == "Shader program failed to link\nmissing output"
        assert str(DecodeError("bad file")) == "bad file"
