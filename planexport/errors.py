"""Exceptions raised by the export pipeline."""


class ExportError(Exception):
    """Base exception for export failures."""

    def __init__(self, message: str, error_type: str = "unknown"):
        super().__init__(message)
        self.error_type = error_type


class InvalidDocumentError(ExportError):
    """The input floor-plan document could not be read."""

    def __init__(self, message: str):
        super().__init__(message, error_type="invalid_document")


class EmptySceneError(ExportError):
    """Nothing exportable was produced from the floor plan."""

    def __init__(self, message: str = "Floor plan produced an empty scene"):
        super().__init__(message, error_type="empty_scene")


class TextureUnavailableError(ExportError):
    """A referenced texture could not be fetched or decoded."""

    def __init__(self, uri: str, reason: str):
        super().__init__(f"Texture unavailable: {uri} ({reason})", error_type="texture_unavailable")
        self.uri = uri
        self.reason = reason


class PipelineStateError(ExportError):
    """The pipeline was invoked out of order."""

    def __init__(self, message: str):
        super().__init__(message, error_type="pipeline_state")
