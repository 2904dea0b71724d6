"""
Script writing for audio briefs.

Turns a topic into narration text through the text generation service,
retrying with exponential backoff, and cleans the result for speech.
"""

import asyncio
import logging
import math
import re
from typing import Awaitable, Callable, Dict, List, Optional

from ..core.errors import GenerationFailure
from ..core.interfaces import TextGenerationService
from .models import DurationClass, Script

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 150
LENGTH_TOLERANCE = 0.10
MAX_OVERSHOOT = 0.15

_SENTENCE_END = re.compile(r"[.!?]+[\"')\]]*(?=\s|$)")
_SPEAKER_LABEL = re.compile(
    r"^[ \t]*(?:\*\*|__)?[A-Z][\w'.-]*(?:[ \t][A-Z][\w'.-]*)?(?:\*\*|__)?[ \t]*:(?:\*\*|__)?[ \t]*",
    re.MULTILINE,
)
_HEADING = re.compile(r"^[ \t]*#{1,6}[ \t]*", re.MULTILINE)
_BRACKETED = re.compile(r"\[[^\]]*\]")
_PARENTHETICAL = re.compile(r"\([^)]*\)")
_EMPHASIS = re.compile(r"[*`~]+|(?<!\w)_+|_+(?!\w)")
_SPACE_BEFORE_PUNCT = re.compile(r"[ \t]+([,.;:!?])")
_WORD = re.compile(r"\S+")

SYSTEM_PROMPT = """You write scripts for short spoken-word audio briefs.

The script is read aloud by a single narrator, so write plain flowing prose:
no headings, no bullet points, no markdown, no stage directions, no speaker
labels, no sound effect cues. Use short sentences and concrete examples."""


def sentence_ends(text: str) -> List[int]:
    """Return the end offset of every complete sentence in text."""
    return [match.end() for match in _SENTENCE_END.finditer(text)]


def count_words(text: str) -> int:
    return len(text.split())


def clean_for_speech(script: str) -> str:
    """
    Clean a raw script for speech synthesis.

    Removes markdown emphasis and heading markers, bracketed stage
    directions, parenthetical asides and speaker labels, then collapses
    whitespace. Paragraph breaks survive as a single blank line.

    Args:
        script: Raw script text

    Returns:
        Text suitable for TTS
    """
    text = script.replace("\r\n", "\n").strip()

    text = _HEADING.sub("", text)
    text = _SPEAKER_LABEL.sub("", text)
    text = _BRACKETED.sub("", text)
    text = _PARENTHETICAL.sub("", text)
    text = _EMPHASIS.sub("", text)
    text = _SPACE_BEFORE_PUNCT.sub(r"\1", text)

    paragraphs = []
    for block in re.split(r"\n\s*\n", text):
        paragraph = " ".join(block.split())
        if paragraph:
            paragraphs.append(paragraph)

    return "\n\n".join(paragraphs)


def estimate_reading_time(word_count: int, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """
    Estimate spoken duration in seconds.

    Args:
        word_count: Number of words
        words_per_minute: Average speaking rate

    Returns:
        Estimated duration in seconds
    """
    return int(round(word_count / words_per_minute * 60))


def backoff_delay(attempt: int, base_delay: float = 2.0) -> float:
    """Delay after the given failed attempt (1-based): 2s, 4s, 8s, ..."""
    return base_delay * (2 ** (attempt - 1))


def build_prompt(topic: str, target_words: int) -> List[Dict[str, str]]:
    """Build the system/user message pair for a topic and word target."""
    low = int(target_words * (1 - LENGTH_TOLERANCE))
    high = int(target_words * (1 + LENGTH_TOLERANCE))
    hook = max(1, round(target_words * 0.1))
    body = round(target_words * 0.8)

    user_prompt = f"""Write a narration script about: {topic}

**Length:** {low}-{high} words (aim for {target_words}). Stay inside this range.

**Structure:**
1. Hook (about {hook} words): one or two sentences that make the listener curious.
2. Body (about {body} words): the core explanation, with one vivid example or analogy.
3. Wrap-up (about {hook} words): a memorable takeaway.

Return only the words the narrator will say."""

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def _cut_at_word(raw: str, max_words: int) -> str:
    best = 0
    for match in _WORD.finditer(raw):
        if count_words(clean_for_speech(raw[:match.end()])) > max_words:
            break
        best = match.end()
    return raw[:best].strip()


def trim_to_word_limit(raw: str, max_words: int, min_words: int = 0) -> str:
    """
    Trim a raw script so its cleaned text stays within max_words.

    Cuts at the last sentence boundary that fits. When no sentence fits, or
    the sentence cut would leave fewer than min_words, cuts at the last
    word that fits instead. Returns the input unchanged if it already fits.
    """
    if count_words(clean_for_speech(raw)) <= max_words:
        return raw

    best = None
    best_words = 0
    for end in sentence_ends(raw):
        words = count_words(clean_for_speech(raw[:end]))
        if words > max_words:
            break
        best, best_words = end, words

    if best is None or best_words < min_words:
        return _cut_at_word(raw, max_words)
    return raw[:best].strip()


class ScriptWriter:
    """
    Writes narration scripts for a topic.

    Calls the text service at most max_attempts times. Empty output, an
    exception, or output more than 15% under the target length counts as
    a failed attempt. Longer output is trimmed to at most 15% over the target.
    A failed attempt is followed by an exponential backoff delay.
    """

    def __init__(
        self,
        text_service: TextGenerationService,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        temperature: float = 0.7,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.text_service = text_service
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.temperature = temperature
        self._sleep = sleep or asyncio.sleep

    async def write(
        self,
        topic: str,
        duration_class: DurationClass = DurationClass.MEDIUM,
    ) -> Script:
        """
        Generate a script for a topic.

        Args:
            topic: What the brief is about
            duration_class: Target length category

        Returns:
            Script with raw text, cleaned spoken text and word counts

        Raises:
            GenerationFailure: If no usable text was produced
        """
        target = duration_class.target_words
        messages = build_prompt(topic, target)
        max_tokens = max(256, target * 3)
        last_error = "no usable text returned"

        for attempt in range(1, self.max_attempts + 1):
            logger.info(f"Script generation attempt {attempt}/{self.max_attempts} for topic: {topic[:80]}")

            try:
                raw = await self.text_service.complete(
                    messages,
                    max_tokens=max_tokens,
                    temperature=self.temperature,
                )
            except Exception as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning(f"Text generation attempt {attempt} failed: {last_error}")
            else:
                script = self._build_script(raw or "", target)
                if script is not None:
                    logger.info(f"Script ready: {script.word_count} words (target {target})")
                    return script
                last_error = "no usable text returned"
                logger.warning(f"Text generation attempt {attempt} returned unusable text")

            if attempt < self.max_attempts:
                delay = backoff_delay(attempt, self.base_delay)
                logger.info(f"Retrying script generation in {delay:.0f}s")
                await self._sleep(delay)

        raise GenerationFailure(
            f"Script generation failed after {self.max_attempts} attempts: {last_error}"
        )

    def _build_script(self, raw: str, target: int) -> Optional[Script]:
        raw = raw.strip()
        if not raw:
            return None

        min_words = math.ceil(target * (1 - MAX_OVERSHOOT))
        raw = trim_to_word_limit(raw, int(target * (1 + MAX_OVERSHOOT)), min_words=min_words)
        spoken = clean_for_speech(raw)
        word_count = count_words(spoken)

        if word_count < min_words:
            logger.info(f"Script too short: {word_count} words, need at least {min_words}")
            return None

        return Script(
            text=raw,
            spoken_text=spoken,
            word_count=word_count,
            target_word_count=target,
        )
