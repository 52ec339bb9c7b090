"""Custom exceptions for export pipeline operations."""


class ConversionError(Exception):
    """A single source record could not be rendered to output bytes."""

    def __init__(self, message: str | None = None):
        self.message = (
            f"Conversion failed: {message}" if message else "Conversion failed"
        )
        super().__init__(self.message)


class RuleViolationError(Exception):
    """Supplementary-field rules are invalid for the mapping profile.

    Aborts the current window's conversion pass only.
    """

    def __init__(self, message: str | None = None):
        self.message = (
            f"Transformation rule violation: {message}"
            if message
            else "Transformation rule violation"
        )
        super().__init__(self.message)


class IdentifierStoreUnavailableError(Exception):
    """The ranked identifier store could not be paged.  Job-fatal."""

    def __init__(self, message: str | None = None):
        self.message = (
            f"Identifier store unavailable: {message}"
            if message
            else "Identifier store unavailable"
        )
        super().__init__(self.message)


class OutputSinkError(Exception):
    """The output sink could not be written, flushed or closed.  Job-fatal."""

    def __init__(self, location: str, message: str | None = None):
        self.location = location
        self.message = (
            f"Output sink {location} failed: {message}"
            if message
            else f"Output sink {location} failed"
        )
        super().__init__(self.message)


class ExportJobError(Exception):
    """Top-level error for the run_export entry point."""

    pass


class UnsupportedRecordCategoryError(ValueError):
    """Raised when no export strategy is registered for a record category."""

    pass
