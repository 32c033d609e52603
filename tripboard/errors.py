"""Error taxonomy shared by the store, the services and the client."""


class ItineraryError(Exception):
    """Base class for itinerary operation failures."""

    pass


class InvalidInputError(ItineraryError):
    """Input rejected before any mutation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class ConflictError(ItineraryError):
    """Write conflicts with existing state (reload rather than retry)."""

    def __init__(self, message: str, code: str, resource_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.resource_id = resource_id


class NotFoundError(ItineraryError):
    """Referenced record does not exist (stale id)."""

    def __init__(self, resource: str, resource_id: object) -> None:
        super().__init__(f"{resource} not found: {resource_id}")
        self.resource = resource
        self.resource_id = str(resource_id)


class PersistenceError(ItineraryError):
    """Unit of work aborted; all of its writes were rolled back."""

    pass
