"""
Environment-backed configuration.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel


class Settings(BaseModel):
    supabase_url: str
    supabase_service_key: str
    gemini_api_key: str
    public_base_url: str = "http://localhost:3000/briefs"
    frontend_url: str = "http://localhost:3000"
    allow_all_origins: bool = False
    gemini_text_model: str = "gemini-2.0-flash"
    gemini_tts_model: str = "gemini-2.5-flash-preview-tts"
    gemini_tts_voice: str = "Aoede"
    tts_language: str = "en-US"
    content_table: str = "content_records"
    audio_bucket: str = "episodes"
    port: int = 8000


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Load settings from environment variables (and a .env file if present).

    Raises:
        ValueError: If a required variable is missing
    """
    load_dotenv(env_file)

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_service_key = os.getenv("SUPABASE_SERVICE_KEY")
    gemini_api_key = os.getenv("GEMINI_API_KEY")

    if not all([supabase_url, supabase_service_key, gemini_api_key]):
        raise ValueError("Missing required environment variables")

    defaults = Settings.model_fields
    return Settings(
        supabase_url=supabase_url,
        supabase_service_key=supabase_service_key,
        gemini_api_key=gemini_api_key,
        public_base_url=os.getenv("PUBLIC_BASE_URL", defaults["public_base_url"].default),
        frontend_url=os.getenv("FRONTEND_URL", defaults["frontend_url"].default),
        allow_all_origins=os.getenv("ALLOW_ALL_ORIGINS", "false").lower() == "true",
        gemini_text_model=os.getenv("GEMINI_TEXT_MODEL", defaults["gemini_text_model"].default),
        gemini_tts_model=os.getenv("GEMINI_TTS_MODEL", defaults["gemini_tts_model"].default),
        gemini_tts_voice=os.getenv("GEMINI_TTS_VOICE", defaults["gemini_tts_voice"].default),
        tts_language=os.getenv("TTS_LANGUAGE", defaults["tts_language"].default),
        content_table=os.getenv("CONTENT_TABLE", defaults["content_table"].default),
        audio_bucket=os.getenv("AUDIO_BUCKET", defaults["audio_bucket"].default),
        port=int(os.getenv("PORT", defaults["port"].default)),
    )
