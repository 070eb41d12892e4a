"""
Error types for transcript encoding, tool registration and reconciliation
"""

from .errors import (
    ConfigValidationError,
    MissingToolResultError,
    ToolDefinitionError,
    ToolLoadError,
    ToolResultIdMismatchError,
    TranscriptBridgeError,
    UnsupportedImageFormatError,
)

__all__ = [
    "ConfigValidationError",
    "MissingToolResultError",
    "ToolDefinitionError",
    "ToolLoadError",
    "ToolResultIdMismatchError",
    "TranscriptBridgeError",
    "UnsupportedImageFormatError",
]
