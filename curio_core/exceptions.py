"""Custom exceptions for the Curio kernel.

Every failure raised by the Collection is local, synchronous and
recoverable: the caller may correct the input and retry. Nothing is
partially applied when one of these is raised.
"""


class CurioError(Exception):
    """Base exception for all Curio errors."""

    def __init__(self, message: str, details: dict | None = None):
        """Initialize exception with message and optional details.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(CurioError):
    """Exception raised when input fails a structural or semantic rule.

    Attributes:
        field: Wire name (camelCase) of the offending field, if known
    """

    field: str | None

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        """Initialize validation error.

        Args:
            message: Human-readable error message
            field: Wire name of the offending field
            details: Optional dictionary with additional error context
        """
        if field is not None:
            details = {"field": field, **(details or {})}
        super().__init__(message, details)
        self.field = field


class NamespaceViolationError(ValidationError):
    """Exception raised when a key breaks the namespacing scheme.

    Also raised when a manifest breaks the dependency direction
    (an Extension declaring a dependency on a Plugin).

    Attributes:
        key: The offending key or manifest id
    """

    key: str | None

    def __init__(self, message: str, key: str | None = None, field: str | None = None):
        super().__init__(message, field=field, details={"key": key} if key is not None else None)
        self.key = key


class DuplicateIdError(CurioError):
    """Exception raised when an id collides with an existing entity.

    Attributes:
        entity_kind: Human-readable kind name (e.g. 'Work')
        entity_id: The colliding id
    """

    entity_kind: str
    entity_id: str

    def __init__(self, entity_kind: str, entity_id: str):
        super().__init__(
            f"{entity_kind} with id {entity_id} already exists.",
            details={"entity_kind": entity_kind, "entity_id": entity_id},
        )
        self.entity_kind = entity_kind
        self.entity_id = entity_id


class NotFoundError(CurioError):
    """Exception raised when an id (own or foreign key) does not resolve.

    Attributes:
        entity_kind: Human-readable kind name of the missing entity
        entity_id: The id that failed to resolve
        field: Wire name of the referencing field for foreign keys, else None
    """

    entity_kind: str
    entity_id: str
    field: str | None

    def __init__(self, entity_kind: str, entity_id: str, field: str | None = None):
        details = {"entity_kind": entity_kind, "entity_id": entity_id}
        if field is not None:
            details["field"] = field
        super().__init__(f"{entity_kind} with id {entity_id} does not exist.", details)
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        self.field = field
