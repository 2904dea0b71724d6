"""
Slug minting for brief URLs.
"""

import logging
import random
import re
import string
import time
from typing import Optional

from ..core.errors import StorageFailure
from ..core.interfaces import TextGenerationService
from .models import Slug

logger = logging.getLogger(__name__)

MIN_CANDIDATE_LENGTH = 3
MAX_CANDIDATE_LENGTH = 30
TOPIC_SLUG_LENGTH = 20
SUFFIX_LENGTH = 4

DECORATIONS = [
    "deep-dive",
    "explained",
    "insights",
    "decoded",
    "unpacked",
    "briefing",
    "essentials",
    "spotlight",
    "primer",
    "story",
]

SLUG_PROMPT = """Suggest a short, catchy URL slug (2-4 words) for an audio brief about: {topic}

Rules: lowercase words joined by hyphens, no punctuation, no explanation.
Reply with the slug only."""


def sanitize_slug(text: str) -> str:
    """
    Reduce arbitrary text to [a-z0-9-].

    Lowercases, turns every other run of characters into a hyphen,
    collapses repeated hyphens and trims them from both ends.
    """
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower())
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


def topic_slug(topic: str, max_length: int = TOPIC_SLUG_LENGTH) -> str:
    return sanitize_slug(topic)[:max_length].strip("-")


class SlugMinter:
    """
    Mints unique slugs, asking the text service for a creative candidate
    and falling back to one derived from the topic.
    """

    def __init__(
        self,
        store,
        text_service: Optional[TextGenerationService] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.text_service = text_service
        self.rng = rng or random.Random()

    async def mint(self, topic: str) -> Slug:
        """
        Mint a slug for a topic. Never raises.

        Args:
            topic: Topic of the brief

        Returns:
            Slug that did not exist in the store when checked
        """
        candidate = await self._creative_candidate(topic)
        if candidate is None:
            candidate = self.fallback_candidate(topic)
            logger.info(f"Using fallback slug candidate: {candidate}")

        return Slug(value=await self.make_unique(candidate))

    async def _creative_candidate(self, topic: str) -> Optional[str]:
        if self.text_service is None:
            return None

        try:
            raw = await self.text_service.complete(
                [{"role": "user", "content": SLUG_PROMPT.format(topic=topic)}],
                max_tokens=20,
                temperature=0.9,
            )
        except Exception as e:
            logger.warning(f"Slug generation failed, using fallback: {e}")
            return None

        lines = (raw or "").strip().splitlines()
        candidate = sanitize_slug(lines[0]) if lines else ""
        if not MIN_CANDIDATE_LENGTH <= len(candidate) <= MAX_CANDIDATE_LENGTH:
            logger.info(f"Rejected generated slug candidate: {raw!r}")
            return None
        return candidate

    def fallback_candidate(self, topic: str) -> str:
        """Topic-derived slug decorated with a random descriptive word."""
        base = topic_slug(topic)
        word = self.rng.choice(DECORATIONS)

        if not base:
            return f"{word}-brief"
        if self.rng.random() < 0.5:
            return f"{word}-{base}"
        return f"{base}-{word}"

    async def make_unique(self, candidate: str) -> str:
        """
        Suffix a candidate until the store does not know it.

        Tries the bare candidate, then a random 4 character suffix, then a
        millisecond timestamp.
        """
        if not await self._taken(candidate):
            return candidate

        alphabet = string.ascii_lowercase + string.digits
        suffix = "".join(self.rng.choice(alphabet) for _ in range(SUFFIX_LENGTH))
        suffixed = f"{candidate}-{suffix}"
        if not await self._taken(suffixed):
            logger.info(f"Slug collision on '{candidate}', using '{suffixed}'")
            return suffixed

        stamped = f"{candidate}-{int(time.time() * 1000)}"
        logger.info(f"Slug collision on '{suffixed}', using '{stamped}'")
        return stamped

    async def _taken(self, slug: str) -> bool:
        try:
            return await self.store.exists(slug)
        except StorageFailure as e:
            logger.warning(f"Slug existence check failed for '{slug}': {e}")
            return False
