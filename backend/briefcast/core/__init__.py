"""
Core services: configuration, errors, and external service adapters.
"""

from .config import Settings, load_settings
from .errors import (
    BriefcastError,
    FailureKind,
    GenerationFailure,
    SlugCollision,
    StorageFailure,
    SynthesisFailure,
    classify_failure,
)
from .interfaces import TextGenerationService, SpeechSynthesisService
from .gemini_client import GeminiTextService, GeminiSpeechService

__all__ = [
    'Settings',
    'load_settings',
    'BriefcastError',
    'FailureKind',
    'GenerationFailure',
    'SlugCollision',
    'StorageFailure',
    'SynthesisFailure',
    'classify_failure',
    'TextGenerationService',
    'SpeechSynthesisService',
    'GeminiTextService',
    'GeminiSpeechService',
]
