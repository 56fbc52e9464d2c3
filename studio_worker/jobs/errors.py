"""Exceptions raised inside the generation pipeline."""


class GenerationError(Exception):
    """Base class for pipeline errors."""


class MisconfigurationError(GenerationError):
    """A required setting (e.g. the provider credential) is missing. Never retried."""


class ProviderJobFailed(GenerationError):
    """The provider reported the job itself as failed. Never retried."""

    def __init__(self, message: str, task_id: str = ""):
        super().__init__(message)
        self.message = message
        self.task_id = task_id


class ReferenceAssetError(GenerationError):
    """An inline reference asset could not be decoded or rehosted."""
