"""
Gemini adapters for the text generation and speech synthesis interfaces.

Gemini TTS returns raw PCM (24000 Hz, mono, 16-bit). The speech adapter hands
that back from synthesize and converts it to MP3 in encode, so the conversion
runs after the synthesis call instead of inside its timeout.
"""

import io
import logging
from typing import Dict, List

from google import genai
from google.genai import types
from pydub import AudioSegment

from .interfaces import TextGenerationService, SpeechSynthesisService

logger = logging.getLogger(__name__)


def convert_to_mp3(audio_data: bytes, bitrate: str = "192k") -> bytes:
    """
    Convert Gemini PCM audio to MP3.

    Args:
        audio_data: Raw PCM data (24000 Hz, mono, 16-bit)
        bitrate: MP3 bitrate

    Returns:
        MP3 audio data as bytes
    """
    audio = AudioSegment.from_raw(
        io.BytesIO(audio_data),
        sample_width=2,  # 16-bit = 2 bytes
        frame_rate=24000,
        channels=1
    )

    mp3_buffer = io.BytesIO()
    audio.export(mp3_buffer, format="mp3", bitrate=bitrate)
    mp3_data = mp3_buffer.getvalue()

    logger.debug(f"MP3 conversion complete: {len(mp3_data)} bytes")
    return mp3_data


class GeminiTextService(TextGenerationService):
    """Chat-style completions on top of Gemini generate_content."""

    def __init__(self, client: genai.Client, model: str = "gemini-2.0-flash"):
        self.client = client
        self.model = model

    async def complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> str:
        system_parts = [m["content"] for m in messages if m.get("role") == "system"]
        contents = [
            types.Content(
                role="model" if m.get("role") == "assistant" else "user",
                parts=[types.Part(text=m["content"])],
            )
            for m in messages
            if m.get("role") != "system"
        ]

        config = types.GenerateContentConfig(
            system_instruction="\n\n".join(system_parts) if system_parts else None,
            max_output_tokens=max_tokens,
            temperature=temperature,
        )

        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=config,
        )

        return response.text or ""


class GeminiSpeechService(SpeechSynthesisService):
    """Single-voice Gemini TTS. synthesize returns PCM, encode returns MP3."""

    def __init__(
        self,
        client: genai.Client,
        model: str = "gemini-2.5-flash-preview-tts",
        voice_name: str = "Aoede",
    ):
        self.client = client
        self.model = model
        self.voice_name = voice_name

    async def synthesize(self, text: str, language_tag: str) -> bytes:
        speech_config = types.SpeechConfig(
            language_code=language_tag,
            voice_config=types.VoiceConfig(
                prebuilt_voice_config=types.PrebuiltVoiceConfig(
                    voice_name=self.voice_name
                )
            ),
        )

        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=speech_config,
            ),
        )

        pcm_data = b""
        for part in response.candidates[0].content.parts:
            if getattr(part, "inline_data", None) and part.inline_data.data:
                pcm_data += part.inline_data.data

        if not pcm_data:
            raise ValueError("No audio data generated")

        logger.info(f"TTS returned {len(pcm_data)} bytes of PCM for {len(text)} characters")
        return pcm_data

    def encode(self, audio: bytes) -> bytes:
        return convert_to_mp3(audio)
