"""ORM models."""

from loteria.models.saved_set import SavedSetRow

__all__ = ["SavedSetRow"]
