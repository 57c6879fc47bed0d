"""
Image Quality Analyzer - Error Types

Every failure inside an analysis run is an AnalysisError carrying:
- code: stable snake_case identifier (safe for logs and JSON output)
- message: human-readable description
- diagnostic: optional driver log (shader compiler/linker output)

All kinds are unrecoverable for the current run. The rendering shell and
the pipeline step methods raise them; the pipeline boundary (run,
analyze_image, analyze_photo) catches them, logs, and returns an aborted
report instead.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base exception for all analysis failures"""

    code = "analysis_error"

    def __init__(self, message: str, diagnostic: Optional[str] = None):
        self.message = message
        self.diagnostic = diagnostic
        super().__init__(message)

    def __str__(self) -> str:
        if self.diagnostic:
            return f"{self.message}\n{self.diagnostic}"
        return self.message


class ResourceCreationError(AnalysisError):
    """GL context, texture, buffer or vertex array could not be allocated"""

    code = "resource_creation_error"


class ShaderError(AnalysisError):
    """Shader program could not be built"""

    code = "shader_error"


class CompileError(ShaderError):
    """A shader stage failed to compile"""

    code = "shader_compile_error"


class LinkError(ShaderError):
    """Compiled stages failed to link into a program"""

    code = "program_link_error"


class DecodeError(AnalysisError):
    """Source image could not be located or decoded"""

    code = "decode_error"


class ContextBusyError(AnalysisError):
    """Rendering context is already in use by another run"""

    code = "context_busy"


class PipelineStateError(AnalysisError):
    """Pipeline step called out of order"""

    code = "invalid_pipeline_state"
