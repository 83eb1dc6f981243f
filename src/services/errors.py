"""Error taxonomy for the recommendation pipeline.

ClientInputError maps to a 4xx outcome and is raised before any collaborator
is called. CollaboratorError subclasses map to a 5xx outcome carrying the
collaborator's message. Empty results are not errors.
"""


class RecommenderError(Exception):
    """Base class for all pipeline errors."""


class ClientInputError(RecommenderError):
    """Request body is missing or unusable (no imageUrl, no ingredients)."""


class CollaboratorError(RecommenderError):
    """An external service call failed. Never partially fulfilled."""

    collaborator = "collaborator"


class VisionError(CollaboratorError):
    """Image unreachable, invalid, or not analyzable by the vision service."""

    collaborator = "vision"


class StorageError(CollaboratorError):
    """Recipe corpus could not be read."""

    collaborator = "storage"


class CompletionError(CollaboratorError):
    """Language model call failed (quota, auth, timeout, empty reply)."""

    collaborator = "completion"
