"""Custom exception hierarchy for the course generation engine."""

from errors.exceptions import (
    AllProvidersExhausted,
    BackendError,
    ConfigurationError,
    CredentialExhaustionError,
    CurriculumError,
    ExtractionError,
    GenerationCancelled,
    GenerationError,
    LessonGenerationError,
    PersistenceError,
    QueueClosedError,
)

__all__ = [
    "AllProvidersExhausted",
    "BackendError",
    "ConfigurationError",
    "CredentialExhaustionError",
    "CurriculumError",
    "ExtractionError",
    "GenerationCancelled",
    "GenerationError",
    "LessonGenerationError",
    "PersistenceError",
    "QueueClosedError",
]
