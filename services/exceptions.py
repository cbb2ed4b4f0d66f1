"""
Error taxonomy for the loading workflow.

Services raise these; ``main.py`` converts them into JSON responses at the
HTTP boundary.
"""


class WorkflowError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WorkflowError):
    """Missing/invalid attachment, wrong stage, finished record."""
    status_code = 400


class PermissionDenied(ValidationError):
    """The actor may not perform the operation on this record."""
    status_code = 403


class UploadError(WorkflowError):
    """Attachment could not be written to storage. Nothing was mutated."""
    status_code = 502


class PersistenceError(WorkflowError):
    """The record update failed after a successful upload."""
    status_code = 409


class FetchError(WorkflowError):
    """Record (or stored file) not found, or not visible to the actor."""
    status_code = 404
