"""Domain errors raised by the PlantMap core.

All of these are caller-facing, recoverable conditions. The web layer maps
each one to a distinct HTTP status so clients can tell them apart.
"""

from __future__ import annotations

from uuid import UUID


class PlantMapError(Exception):
    """Base class for PlantMap domain errors."""

    code = "plantmap_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSelection(PlantMapError):
    """A submission references unknown, already-done or non-selectable trackers."""

    code = "invalid_selection"

    def __init__(self, message: str, tracker_ids: list[str] | None = None):
        super().__init__(message)
        self.tracker_ids = tracker_ids or []


class DuplicatePending(PlantMapError):
    """A near-identical pending request was submitted within the debounce window."""

    code = "duplicate_pending"

    def __init__(self, message: str, existing_request_id: UUID):
        super().__init__(message)
        self.existing_request_id = existing_request_id


class NotFound(PlantMapError):
    """The status request does not exist or is no longer pending."""

    code = "not_found"


class PreconditionFailed(PlantMapError):
    """Cycle reset attempted while the cycle is not complete."""

    code = "precondition_failed"


class ConfigurationError(PlantMapError):
    """Site configuration is missing or invalid."""

    code = "configuration_error"
