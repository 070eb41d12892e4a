"""
Exception types raised or reported by the transcript bridge
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class TranscriptBridgeError(Exception):
    """Base class for transcript bridge failures."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.details: Dict[str, Any] = details or {}


class ConfigValidationError(TranscriptBridgeError):
    """Raised when a bridge configuration file fails validation."""


class ToolDefinitionError(TranscriptBridgeError):
    """Raised by registration when a tool definition has invalid fields."""

    def __init__(self, tool_name: str, errors: Sequence[str]) -> None:
        self.tool_name = tool_name
        self.errors: List[str] = list(errors)
        super().__init__(
            f"Invalid tool definition for '{tool_name}': {', '.join(self.errors)}",
            details={"tool_name": tool_name, "errors": self.errors},
        )


class ToolLoadError(TranscriptBridgeError):
    """A single tool source file could not be loaded."""

    def __init__(self, file: str, message: str) -> None:
        self.file = file
        super().__init__(f"{file}: {message}", details={"file": file})


class UnsupportedImageFormatError(TranscriptBridgeError):
    def __init__(self, image_format: str) -> None:
        self.image_format = image_format
        super().__init__(f"Unsupported image format: {image_format}", details={"format": image_format})


class ToolResultIdMismatchError(TranscriptBridgeError):
    """Tool results reference ids that the preceding assistant turn never emitted."""

    def __init__(self, message: str, tool_result_ids: Sequence[str], tool_use_ids: Sequence[str]) -> None:
        self.tool_result_ids = list(tool_result_ids)
        self.tool_use_ids = list(tool_use_ids)
        super().__init__(
            message,
            details={"tool_result_ids": self.tool_result_ids, "tool_use_ids": self.tool_use_ids},
        )


class MissingToolResultError(TranscriptBridgeError):
    """Tool invocations of the preceding assistant turn have no result."""

    def __init__(
        self,
        message: str,
        missing_tool_use_ids: Sequence[str],
        existing_tool_result_ids: Sequence[str],
    ) -> None:
        self.missing_tool_use_ids = list(missing_tool_use_ids)
        self.existing_tool_result_ids = list(existing_tool_result_ids)
        super().__init__(
            message,
            details={
                "missing_tool_use_ids": self.missing_tool_use_ids,
                "existing_tool_result_ids": self.existing_tool_result_ids,
            },
        )
