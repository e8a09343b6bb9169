"""Error taxonomy for diagnostics.

Tool adapters raise these; each check catches them and renders a
marked line, so none of them ever aborts a report.
"""


class DiagnosticError(Exception):
    """Base class for all diagnostic errors.

    Args:
        message: Human-readable description
        detail: Optional raw tool output supporting the message
    """

    code = "diagnostic_error"

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class MissingResource(DiagnosticError):
    """A file or external tool is not available."""

    code = "missing_resource"


class NetworkFailure(DiagnosticError):
    """A host could not be reached or a download failed."""

    code = "network_failure"


__all__ = [
    "DiagnosticError",
    "MissingResource",
    "NetworkFailure",
]
