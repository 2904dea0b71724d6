"""
Pytest configuration and shared fixtures for backend tests.
"""

import asyncio
import random

import pytest
from unittest.mock import Mock

from briefcast.core.errors import SlugCollision
from briefcast.core.interfaces import SpeechSynthesisService, TextGenerationService
from briefcast.episodes import AudioSynthesizer, PipelineOrchestrator, ScriptWriter, SlugMinter
from briefcast.episodes.audio import DEFAULT_TIERS

SENTENCE = "Stars collapse into dense regions where gravity wins every argument."
BASE_URL = "https://briefs.example.com"
FAKE_MP3 = b"\xff\xfb\x90\x00" + b"\x00" * 2044


def make_script(words: int, sentences_per_paragraph: int = 4) -> str:
    """Script of ten-word sentences grouped into paragraphs."""
    sentences = [SENTENCE] * (words // 10)
    paragraphs = [
        " ".join(sentences[i:i + sentences_per_paragraph])
        for i in range(0, len(sentences), sentences_per_paragraph)
    ]
    return "\n\n".join(paragraphs)


class FakeTextService(TextGenerationService):
    """
    Scripted text service. Slug prompts and script prompts draw from
    separate queues; an Exception in a queue is raised instead of returned.
    """

    def __init__(self, scripts=None, slugs=None):
        self.scripts = list(scripts or [])
        self.slugs = list(slugs or [])
        self.calls = []

    async def complete(self, messages, max_tokens, temperature):
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        is_slug = "URL slug" in messages[-1]["content"]
        queue = self.slugs if is_slug else self.scripts
        if not queue:
            return ""
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def script_calls(self):
        return [c for c in self.calls if "URL slug" not in c["messages"][-1]["content"]]


class FakeSpeechService(SpeechSynthesisService):
    """Speech service driven by a callable(text) -> response."""

    def __init__(self, behaviour=None):
        self.behaviour = behaviour or (lambda text: FAKE_MP3)
        self.calls = []

    async def synthesize(self, text, language_tag):
        self.calls.append({"text": text, "language_tag": language_tag})
        result = self.behaviour(text)
        if asyncio.iscoroutine(result):
            result = await result
        if isinstance(result, Exception):
            raise result
        return result


class InMemoryStore:
    """Content store double keeping records in insertion order."""

    def __init__(self):
        self.records = []
        self.existing = set()
        self.insert_errors = []
        self.audio = {}
        self.fail_audio = False
        self.removed = []

    async def exists(self, slug):
        return slug in self.existing or any(r.slug == slug for r in self.records)

    async def insert(self, record):
        if self.insert_errors:
            error = self.insert_errors.pop(0)
            if isinstance(error, SlugCollision):
                self.existing.add(record.slug)
            raise error
        if await self.exists(record.slug):
            raise SlugCollision(f"Slug already exists: {record.slug}")
        self.records.append(record)

    async def list_recent(self, limit=10):
        indexed = sorted(enumerate(self.records), key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [record for _, record in indexed][:max(1, min(limit, 50))]

    async def lookup(self, slug):
        return next((r for r in self.records if r.slug == slug), None)

    async def store_audio(self, slug, payload):
        if self.fail_audio:
            return None
        path = f"briefs/{slug}.mp3"
        if path in self.audio:
            self.existing.add(slug)
            raise SlugCollision(f"Audio already exists for slug: {slug}")
        self.audio[path] = payload
        return path

    async def remove_audio(self, path):
        self.audio.pop(path, None)
        self.removed.append(path)

    def public_audio_url(self, path):
        return f"https://cdn.example.com/{path}"


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def fast_tiers(timeout=0.05):
    return [tier._replace(timeout=timeout) for tier in DEFAULT_TIERS]


@pytest.fixture
def text_service():
    return FakeTextService(scripts=[make_script(130)], slugs=["Cosmic Drain"])


@pytest.fixture
def speech_service():
    return FakeSpeechService()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_orchestrator(store, sleep):
    """Factory building an orchestrator around fakes."""

    def _make(text_service, speech_service, tiers=None):
        return PipelineOrchestrator(
            script_writer=ScriptWriter(text_service, sleep=sleep),
            audio_synthesizer=AudioSynthesizer(speech_service, tiers=tiers),
            slug_minter=SlugMinter(store, text_service=text_service, rng=random.Random(7)),
            store=store,
            base_url=BASE_URL,
        )

    return _make


@pytest.fixture
def mock_supabase():
    """Mock Supabase client."""
    mock = Mock()
    mock.storage.from_.return_value.upload.return_value = None
    mock.storage.from_.return_value.get_public_url.return_value = "https://example.com/file.mp3"
    return mock

