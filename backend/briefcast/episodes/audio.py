"""
Audio synthesis for briefs.

Speech services reject or time out on long inputs, so synthesis walks an
ordered list of tiers, each a pure function from the cleaned script to a
prefix of it, until one call succeeds:

    full         the whole script, when it is short enough for one call
    substantial  the first 8-12 sentences (about 40% of the script), never
                 more than the full tier's character limit
    excerpt      the opening paragraph(s), at most ~400 characters

The tier that succeeded is reported as the asset's coverage.
"""

import asyncio
import base64
import binascii
import logging
from collections.abc import Mapping
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field

from ..core.errors import SynthesisFailure
from ..core.interfaces import SpeechSynthesisService
from .models import AudioAsset, Coverage
from .script import sentence_ends

logger = logging.getLogger(__name__)

FULL_TEXT_LIMIT = 1000
EXCERPT_CHAR_LIMIT = 400
MIN_SENTENCES = 8
MAX_SENTENCES = 12
SENTENCE_SHARE = 0.4
MIN_AUDIO_BYTES = 512

Candidate = Tuple[str, Coverage]


class Tier(NamedTuple):
    name: str
    select: Callable[[str], Optional[Candidate]]
    timeout: float


class TierAttempt(BaseModel):
    tier: str
    coverage: Coverage
    characters: int
    succeeded: bool
    error: Optional[str] = None


class SynthesisOutcome(BaseModel):
    asset: Optional[AudioAsset] = None
    attempts: List[TierAttempt] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def coverage(self) -> Coverage:
        return self.asset.source_coverage if self.asset else Coverage.NONE


def _label(text: str, candidate: str, coverage: Coverage) -> Optional[Candidate]:
    candidate = candidate.strip()
    if not candidate:
        return None
    if candidate == text.strip():
        return candidate, Coverage.FULL
    return candidate, coverage


def _cut_at_sentence(text: str, limit: int) -> int:
    """Offset of the last sentence end within limit, else the last word break."""
    ends = [end for end in sentence_ends(text) if end <= limit]
    if ends:
        return ends[-1]
    space = text.rfind(" ", 0, limit)
    return space if space > 0 else limit


def full_text(text: str) -> Optional[Candidate]:
    if not text.strip() or len(text) > FULL_TEXT_LIMIT:
        return None
    return text.strip(), Coverage.FULL


def substantial_prefix(text: str) -> Optional[Candidate]:
    if len(text) <= FULL_TEXT_LIMIT:
        return None

    ends = sentence_ends(text)
    count = min(max(round(len(ends) * SENTENCE_SHARE), MIN_SENTENCES), MAX_SENTENCES)
    fitting = [end for end in ends[:count] if end <= FULL_TEXT_LIMIT]
    if not fitting:
        return None

    candidate = _label(text, text[:fitting[-1]], Coverage.SUBSTANTIAL)
    if candidate is None or candidate[1] == Coverage.FULL:
        return None
    return candidate


def opening_excerpt(text: str) -> Optional[Candidate]:
    first_break = text.find("\n\n")
    first_end = len(text) if first_break == -1 else first_break

    if first_end > EXCERPT_CHAR_LIMIT:
        end = _cut_at_sentence(text, EXCERPT_CHAR_LIMIT)
    elif first_break == -1:
        end = first_end
    else:
        second_break = text.find("\n\n", first_end + 2)
        second_end = len(text) if second_break == -1 else second_break
        end = second_end if second_end <= EXCERPT_CHAR_LIMIT else first_end

    return _label(text, text[:end], Coverage.EXCERPT)


DEFAULT_TIERS = [
    Tier("full", full_text, 45.0),
    Tier("substantial", substantial_prefix, 35.0),
    Tier("excerpt", opening_excerpt, 20.0),
]


def decode_audio(response: Any, min_bytes: int = MIN_AUDIO_BYTES) -> Optional[bytes]:
    """
    Normalize a speech service response to audio bytes.

    Accepts raw bytes or a mapping with a base64 "audio" string. Returns
    None for anything malformed or smaller than min_bytes.
    """
    if isinstance(response, (bytes, bytearray)):
        data = bytes(response)
    elif isinstance(response, Mapping):
        audio = response.get("audio")
        if isinstance(audio, (bytes, bytearray)):
            data = bytes(audio)
        elif isinstance(audio, str):
            try:
                data = base64.b64decode(audio, validate=True)
            except (binascii.Error, ValueError):
                return None
        else:
            return None
    else:
        return None

    if len(data) < min_bytes:
        return None
    return data


class AudioSynthesizer:
    """Best-effort synthesis of a cleaned script into MP3."""

    def __init__(
        self,
        speech_service: SpeechSynthesisService,
        language_tag: str = "en-US",
        tiers: Optional[List[Tier]] = None,
        min_bytes: int = MIN_AUDIO_BYTES,
    ):
        self.speech_service = speech_service
        self.language_tag = language_tag
        self.tiers = tiers if tiers is not None else DEFAULT_TIERS
        self.min_bytes = min_bytes

    async def synthesize(self, cleaned_text: str) -> Optional[AudioAsset]:
        """Synthesize audio, returning None when every tier fails."""
        outcome = await self.synthesize_with_report(cleaned_text)
        return outcome.asset

    async def synthesize_with_report(self, cleaned_text: str) -> SynthesisOutcome:
        """
        Try each tier in order until one synthesis call succeeds.

        Never raises for service failures; a SynthesisFailure message is
        captured on the outcome when every tier failed.

        Args:
            cleaned_text: Script text after clean_for_speech

        Returns:
            SynthesisOutcome with the asset (if any) and the attempt log
        """
        outcome = SynthesisOutcome()
        failed_candidates = set()

        for tier in self.tiers:
            selected = tier.select(cleaned_text)
            if selected is None:
                continue

            candidate, coverage = selected
            if candidate in failed_candidates:
                logger.debug(f"Skipping tier '{tier.name}': same text already failed")
                continue

            logger.info(f"Synthesizing tier '{tier.name}' ({len(candidate)} chars, timeout {tier.timeout:.0f}s)")

            try:
                response = await asyncio.wait_for(
                    self.speech_service.synthesize(candidate, self.language_tag),
                    timeout=tier.timeout,
                )
                payload = decode_audio(response, self.min_bytes)
                if payload is None:
                    raise SynthesisFailure("Malformed or undersized audio response")
                payload = await asyncio.to_thread(self.speech_service.encode, payload)
            except asyncio.TimeoutError:
                error = f"Timed out after {tier.timeout:.0f}s"
            except Exception as e:
                error = str(e) or e.__class__.__name__
            else:
                outcome.attempts.append(TierAttempt(
                    tier=tier.name,
                    coverage=coverage,
                    characters=len(candidate),
                    succeeded=True,
                ))
                outcome.asset = AudioAsset(
                    payload=payload,
                    source_coverage=coverage,
                    source_text=candidate,
                )
                logger.info(f"Audio generated: {len(payload)} bytes, coverage={coverage.value}")
                return outcome

            logger.warning(f"Audio tier '{tier.name}' failed: {error}")
            failed_candidates.add(candidate)
            outcome.attempts.append(TierAttempt(
                tier=tier.name,
                coverage=coverage,
                characters=len(candidate),
                succeeded=False,
                error=error,
            ))

        failure = SynthesisFailure(
            f"All audio tiers failed ({len(outcome.attempts)} attempted)"
        )
        outcome.error = str(failure)
        logger.warning(str(failure))
        return outcome
