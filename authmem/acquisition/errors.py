"""Acquisition failure types."""

from __future__ import annotations


class AcquisitionError(RuntimeError):
    """Raised when a working tree cannot be populated for a request."""

    def __init__(self, stage: str, detail: str) -> None:
        super().__init__(f"{stage}: {detail}")
        self.stage = stage
        self.detail = detail


class InvalidInputError(AcquisitionError):
    """Malformed repository URL, non-ZIP archive, or missing local directory."""


class WorkspaceError(AcquisitionError):
    """The temporary working tree could not be created."""

    def __init__(self, detail: str) -> None:
        super().__init__("workspace", detail)


__all__ = ["AcquisitionError", "InvalidInputError", "WorkspaceError"]
