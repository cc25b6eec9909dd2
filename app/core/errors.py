"""
Fault types raised by repositories and services.

Business-rule violations are never raised; they come back as result models.
"""


class NotFoundError(ValueError):
    """A referenced entity does not exist (or is soft-deleted)."""

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        if entity_id is not None:
            message = f"{entity} {entity_id} not found"
        else:
            message = f"{entity} not found"
        super().__init__(message)
