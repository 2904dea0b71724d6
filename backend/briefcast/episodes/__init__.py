"""
Brief generation: script writing, audio synthesis, slug minting and the
pipeline that ties them together.
"""

from .models import (
    AudioAsset,
    ContentRecord,
    ContentSummary,
    Coverage,
    DurationClass,
    GenerationRequest,
    GenerationResult,
    PipelineStage,
    Script,
    Slug,
)
from .script import ScriptWriter, clean_for_speech, estimate_reading_time
from .audio import AudioSynthesizer, SynthesisOutcome
from .slugs import SlugMinter
from .pipeline import PipelineOrchestrator, build_orchestrator, describe_failure

__all__ = [
    'AudioAsset',
    'ContentRecord',
    'ContentSummary',
    'Coverage',
    'DurationClass',
    'GenerationRequest',
    'GenerationResult',
    'PipelineStage',
    'Script',
    'Slug',
    'ScriptWriter',
    'clean_for_speech',
    'estimate_reading_time',
    'AudioSynthesizer',
    'SynthesisOutcome',
    'SlugMinter',
    'PipelineOrchestrator',
    'build_orchestrator',
    'describe_failure',
]
