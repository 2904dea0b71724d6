"""
External service interfaces consumed by the pipeline.

Concrete adapters live in gemini_client.py; tests substitute fakes.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Union

SpeechResponse = Union[bytes, Mapping[str, Any]]


class TextGenerationService(ABC):
    """Generative text completion."""

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> str:
        """
        Complete a chat-style prompt.

        Args:
            messages: List of {"role": "system" | "user", "content": str}
            max_tokens: Output token budget
            temperature: Sampling temperature

        Returns:
            Generated text, possibly empty
        """
        pass


class SpeechSynthesisService(ABC):
    """Text-to-speech."""

    @abstractmethod
    async def synthesize(self, text: str, language_tag: str) -> SpeechResponse:
        """
        Synthesize text into audio.

        Returns either raw audio bytes or a mapping with a base64 encoded
        "audio" string. The payload is passed through encode afterwards.
        """
        pass

    def encode(self, audio: bytes) -> bytes:
        """
        Convert a synthesized payload to MP3.

        Called in a worker thread after synthesize returns, outside the
        synthesis timeout. The default assumes the payload is already MP3.
        """
        return audio
