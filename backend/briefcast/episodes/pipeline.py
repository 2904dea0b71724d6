"""
Brief generation pipeline.

Sequences the stages for one topic:

    drafting -> synthesizing -> minting -> persisting -> done

Only drafting can fail the request. Missing audio, a fallback slug or a
failed database write all still produce a result; what went wrong is
reported in the result's diagnostics.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from ..core.errors import FailureKind, GenerationFailure, SlugCollision, StorageFailure
from ..core.interfaces import SpeechSynthesisService, TextGenerationService
from .audio import AudioSynthesizer, SynthesisOutcome
from .models import (
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
from .script import ScriptWriter, estimate_reading_time
from .slugs import SlugMinter

logger = logging.getLogger(__name__)

MAX_REMINTS = 2

COVERAGE_DISCLOSURES = {
    Coverage.FULL: "The audio covers the full script.",
    Coverage.SUBSTANTIAL: "The audio covers a substantial opening portion of the script; the full text is on the page.",
    Coverage.EXCERPT: "The audio is a short excerpt from the opening; the full text is on the page.",
    Coverage.NONE: "Audio could not be generated this time; the script is available as text.",
}

FAILURE_HINTS = {
    FailureKind.CAPACITY_EXCEEDED: (
        "The writing service is over capacity right now.",
        "Please try again in a few minutes, or ask for a short brief.",
    ),
    FailureKind.TIMEOUT: (
        "The writing service took too long to respond.",
        "Please try again, ideally with the short duration.",
    ),
    FailureKind.OTHER: (
        "The writing service did not return a usable script.",
        "Please try again later or rephrase the topic.",
    ),
}


def describe_failure(error: GenerationFailure) -> str:
    """User-facing message for a failed generation with a cause hint and suggestion."""
    hint, suggestion = FAILURE_HINTS[error.kind]
    return f"Could not create the brief. {hint} {suggestion}"


def compose_message(url: str, coverage: Coverage, word_count: int, estimated_seconds: int) -> str:
    minutes, seconds = divmod(estimated_seconds, 60)
    return (
        f"Your brief is ready: {url}\n"
        f"{COVERAGE_DISCLOSURES[coverage]}\n"
        f"Script: {word_count} words, about {minutes}:{seconds:02d} when read aloud."
    )


class PipelineOrchestrator:
    """
    Runs the brief pipeline. Holds no per-request state, so one instance
    can serve concurrent requests.
    """

    def __init__(
        self,
        script_writer: ScriptWriter,
        audio_synthesizer: AudioSynthesizer,
        slug_minter: SlugMinter,
        store,
        base_url: str,
    ):
        self.script_writer = script_writer
        self.audio_synthesizer = audio_synthesizer
        self.slug_minter = slug_minter
        self.store = store
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_services(
        cls,
        text_service: TextGenerationService,
        speech_service: SpeechSynthesisService,
        store,
        base_url: str,
        language_tag: str = "en-US",
        **writer_options,
    ) -> "PipelineOrchestrator":
        """Wire the default components around the given services."""
        return cls(
            script_writer=ScriptWriter(text_service, **writer_options),
            audio_synthesizer=AudioSynthesizer(speech_service, language_tag=language_tag),
            slug_minter=SlugMinter(store, text_service=text_service),
            store=store,
            base_url=base_url,
        )

    def url_for(self, slug: Slug) -> str:
        return f"{self.base_url}/{slug.value}"

    async def generate(
        self,
        topic: str,
        duration_class: DurationClass = DurationClass.MEDIUM,
    ) -> GenerationResult:
        """
        Generate, voice and record a brief for a topic.

        Args:
            topic: What the brief is about
            duration_class: Target length category

        Returns:
            GenerationResult with URL, audio coverage and length estimates

        Raises:
            GenerationFailure: If the script could not be written
        """
        request = GenerationRequest(topic=topic, duration_class=duration_class)
        stages: List[PipelineStage] = [PipelineStage.DRAFTING]
        diagnostics: List[str] = []

        logger.info(f"Generating brief for topic: {request.topic[:80]} ({request.duration_class.value})")

        try:
            script = await self.script_writer.write(request.topic, request.duration_class)
        except GenerationFailure as e:
            stages.append(PipelineStage.FAILED)
            e.stages = stages
            logger.error(f"Brief generation failed ({e.kind.value}): {e}")
            raise

        stages.append(PipelineStage.SYNTHESIZING)
        synthesis = await self.audio_synthesizer.synthesize_with_report(script.spoken_text)
        if synthesis.error:
            diagnostics.append(synthesis.error)

        stages.append(PipelineStage.MINTING)
        slug = await self.slug_minter.mint(request.topic)

        stages.append(PipelineStage.PERSISTING)
        slug, audio_url, persisted = await self._persist(request, script, synthesis, slug, diagnostics)

        stages.append(PipelineStage.DONE)
        url = self.url_for(slug)
        coverage = synthesis.coverage
        estimated_seconds = estimate_reading_time(script.word_count)

        logger.info(f"Brief complete: {url} (coverage={coverage.value}, persisted={persisted})")

        return GenerationResult(
            url=url,
            slug=slug.value,
            coverage=coverage,
            word_count=script.word_count,
            estimated_seconds=estimated_seconds,
            message=compose_message(url, coverage, script.word_count, estimated_seconds),
            script=script.text,
            audio_url=audio_url,
            persisted=persisted,
            stages=stages,
            diagnostics=diagnostics,
        )

    async def _persist(
        self,
        request: GenerationRequest,
        script: Script,
        synthesis: SynthesisOutcome,
        slug: Slug,
        diagnostics: List[str],
    ):
        """
        Upload audio and insert the record. Never raises StorageFailure.

        Audio never replaces an existing object. A taken slug, whether found
        by the upload or by the insert, is re-minted at most MAX_REMINTS times.

        Returns:
            (final slug, public audio URL or None, whether the record was stored)
        """
        for attempt in range(MAX_REMINTS + 1):
            audio_path = None
            audio_url = None

            try:
                if synthesis.asset is not None:
                    audio_path, audio_url = await self._store_audio(slug, synthesis.asset.payload, diagnostics)

                record = ContentRecord(
                    topic=request.topic,
                    slug=slug.value,
                    url=self.url_for(slug),
                    script=script.text,
                    audio_path=audio_path,
                    audio_url=audio_url,
                    coverage=synthesis.coverage,
                    word_count=script.word_count,
                    created_at=datetime.now(timezone.utc),
                )
                await self.store.insert(record)
                return slug, audio_url, True
            except SlugCollision as e:
                if audio_path is not None:
                    await self.store.remove_audio(audio_path)
                if attempt == MAX_REMINTS:
                    diagnostics.append(str(e))
                    logger.error(f"Giving up on storing brief after {attempt} re-mints: {e}")
                    break
                logger.warning(f"{e}; minting a new slug")
                slug = await self.slug_minter.mint(request.topic)
            except StorageFailure as e:
                diagnostics.append(str(e))
                logger.error(f"Failed to store brief '{slug.value}': {e}", exc_info=True)
                return slug, audio_url, False

        return slug, None, False

    async def _store_audio(self, slug: Slug, payload: bytes, diagnostics: List[str]):
        try:
            path = await self.store.store_audio(slug.value, payload)
        except SlugCollision:
            raise
        except Exception as e:
            logger.warning(f"Audio upload failed for '{slug.value}': {e}")
            path = None

        if path is None:
            diagnostics.append("Audio upload failed")
            return None, None
        return path, self.store.public_audio_url(path)

    async def list_recent(self, limit: int = 10) -> List[ContentSummary]:
        """Most recent briefs first."""
        records = await self.store.list_recent(limit)
        return [ContentSummary.from_record(record) for record in records]

    async def lookup(self, slug: str) -> Optional[ContentRecord]:
        return await self.store.lookup(slug)


def build_orchestrator(settings, genai_client, supabase) -> PipelineOrchestrator:
    """Production wiring: Gemini services and the Supabase content store."""
    from ..core.gemini_client import GeminiSpeechService, GeminiTextService
    from ..storage import ContentStore

    text_service = GeminiTextService(genai_client, model=settings.gemini_text_model)
    speech_service = GeminiSpeechService(
        genai_client,
        model=settings.gemini_tts_model,
        voice_name=settings.gemini_tts_voice,
    )
    store = ContentStore(
        supabase,
        table=settings.content_table,
        bucket=settings.audio_bucket,
    )

    return PipelineOrchestrator.from_services(
        text_service=text_service,
        speech_service=speech_service,
        store=store,
        base_url=settings.public_base_url,
        language_tag=settings.tts_language,
    )
