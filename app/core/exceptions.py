"""Domain exceptions for the grading core.

Routers translate these into HTTP errors; the grading modules raise them
without knowing about FastAPI.
"""


class GradingError(Exception):
    """Base class for grading failures."""


class ValidationFailure(GradingError):
    """Input rejected locally before any write happens."""


class NotFoundError(GradingError):
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class SessionBusyError(GradingError):
    """A save is already in flight for this grading session."""


class StoreError(GradingError):
    """Transient persistence failure; the same action can be retried."""


class AIAssistError(GradingError):
    """The AI-assist grading call failed or returned garbage."""
