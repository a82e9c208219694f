"""
Configuration for the Gemini image generator.
Reads the .env file once and exposes a Settings value.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

DEFAULT_MODEL = "gemini-2.0-flash-exp"
DEFAULT_TIMEOUT_MS = 300_000
DEFAULT_OUTPUT_DIR = "generated_images"

# Checked in order, first non-empty wins
API_KEY_VARIABLES = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "VITE_GEMINI_API_KEY")


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_MODEL
    request_timeout_ms: Optional[int] = DEFAULT_TIMEOUT_MS
    output_dir: str = DEFAULT_OUTPUT_DIR
    log_level: str = "INFO"


def _read_api_key() -> Optional[str]:
    for name in API_KEY_VARIABLES:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def _read_timeout() -> Optional[int]:
    raw = (os.getenv("GEMINI_TIMEOUT_MS") or "").strip()
    if not raw:
        return DEFAULT_TIMEOUT_MS
    try:
        timeout = int(raw)
    except ValueError:
        raise ValueError(f"GEMINI_TIMEOUT_MS must be an integer, got '{raw}'")
    # 0 disables the client-side timeout
    return timeout or None


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """
    Load settings from the environment, after merging in the .env file.

    Args:
        dotenv_path: Explicit .env location; the nearest .env is used when omitted

    Returns:
        A Settings instance
    """
    load_dotenv(dotenv_path)

    return Settings(
        gemini_api_key=_read_api_key(),
        gemini_model=(os.getenv("GEMINI_MODEL") or DEFAULT_MODEL).strip(),
        request_timeout_ms=_read_timeout(),
        output_dir=(os.getenv("OUTPUT_DIR") or DEFAULT_OUTPUT_DIR).strip(),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    )


def configure_logging(settings: Settings) -> None:
    """Set up root logging at the configured level."""
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level)
