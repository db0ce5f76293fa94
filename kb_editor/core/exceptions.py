"""
Platform-wide exception hierarchy.

Services raise these types; the app factory registers one JSON error handler
per type so blueprints get consistent HTTP status codes without per-route
try/except blocks.

Usage:
    from kb_editor.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Section", resource_id=section_id)
    raise ValidationError("Invalid section", details={"sectionIds": [...]})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given organization.

    Used for BOTH genuinely missing records AND rows owned by another
    organization, so a 404 never confirms that a foreign id exists.

    Args:
        resource: Human-readable entity name (e.g. "Section", "ExportConfig").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        org_id: Optional — the scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        org_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.org_id = org_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if org_id is not None:
            msg += f" (org={org_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Maps to HTTP 422 in the app-level error handler.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")
