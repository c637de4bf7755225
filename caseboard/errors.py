from __future__ import annotations


class CaseboardError(Exception):
    """Base class for errors raised by the caseboard core."""


class SourceError(CaseboardError):
    """A category request could not produce usable rows."""

    def __init__(self, category: str, message: str) -> None:
        super().__init__(f"{category}: {message}")
        self.category = category


class TransportError(SourceError):
    """Network failure or non-success HTTP status."""


class MalformedPayloadError(SourceError):
    """Response body is not a row array nor a {"value": [...]} envelope."""
