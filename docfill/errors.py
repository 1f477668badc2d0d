# docfill/errors.py
from __future__ import annotations


class DocFillError(Exception):
    """Base class for every failure a fill/convert stage can report."""


class MalformedTemplateError(DocFillError):
    """Template bytes are not a readable .docx archive."""


# alias: a template that is not a Word package is a document format failure
DocumentFormatError = MalformedTemplateError


class RenderError(DocFillError):
    """The template engine rejected the template or the values."""


class ConversionError(DocFillError):
    pass


class ConversionUnavailableError(ConversionError):
    """Neither the primary nor the fallback converter command worked."""


class StorageError(DocFillError):
    pass


class ConfigError(DocFillError):
    """DOCFILL_* settings could not be parsed."""


class InvalidTransitionError(DocFillError):
    def __init__(self, operation: str, state):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while pipeline is {state.value}")
