"""Application-specific exceptions for consistent error handling."""


class PracticeInputError(ValueError):
    """Invalid input to a practice operation (missing student, bad topic, bad label)."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class IdentityResolutionError(Exception):
    """A student identity could not be resolved or created."""


class GenerationError(Exception):
    """The external generation service did not produce a usable question."""


class GenerationTimeout(GenerationError):
    """The generation call exceeded its timeout."""


class MalformedGenerationError(GenerationError):
    """The generation service returned data of the wrong shape."""
