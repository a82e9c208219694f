"""
Gemini API client module
Provides utilities for requesting images from Gemini's generate_content API
"""

import logging
from typing import List, Dict, Optional, Any
from google import genai
from google.genai import types

from config import DEFAULT_MODEL

logger = logging.getLogger(__name__)

RESPONSE_MODALITIES = ["Text", "Image"]

# Model name mappings for convenience
MODEL_MAPPINGS = {
    "flash": "gemini-2.0-flash-exp",
    "gemini-2.0-flash": "gemini-2.0-flash-exp",
    "flash-image": "gemini-2.5-flash-image",
    "nano-banana": "gemini-2.5-flash-image",
}


def get_model_name(requested_model: str) -> str:
    """
    Get the actual model name to use based on the requested model.

    Args:
        requested_model: The model name requested by the user

    Returns:
        The actual model name to use with the API
    """
    return MODEL_MAPPINGS.get(requested_model.lower(), requested_model)


def build_contents(prompt: str) -> List[Dict[str, Any]]:
    """Wrap a prompt in a single user turn."""
    return [{"role": "user", "parts": [{"text": prompt}]}]


def build_config() -> types.GenerateContentConfig:
    return types.GenerateContentConfig(response_modalities=list(RESPONSE_MODALITIES))


def response_to_dict(response: Any) -> Dict[str, Any]:
    """
    Normalize a generate_content response to plain JSON-compatible data.

    SDK objects are dumped with their camelCase wire names, so inline image
    bytes come back base64 encoded.
    """
    if response is None:
        return {}
    if isinstance(response, dict):
        return response
    if hasattr(response, "model_dump"):
        return response.model_dump(mode="json", by_alias=True, exclude_none=True)
    raise TypeError(f"Unsupported response type: {type(response).__name__}")


class GeminiImageClient:
    """Async wrapper around a google-genai client for image requests."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        timeout_ms: Optional[int] = None
    ):
        if not api_key:
            raise ValueError("No API key provided. Set GEMINI_API_KEY environment variable or pass api_key parameter.")

        self.model = get_model_name(model)
        if self.model != model:
            logger.info(f"Model '{model}' mapped to '{self.model}'")

        http_options = types.HttpOptions(timeout=timeout_ms) if timeout_ms else None
        self._client = genai.Client(api_key=api_key, http_options=http_options)

    async def generate(self, prompt: str) -> Dict[str, Any]:
        """Send one prompt and return the response as a dict."""
        try:
            logger.debug(f"Calling Gemini generate_content with model: {self.model}")
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=build_contents(prompt),
                config=build_config(),
            )
            return response_to_dict(response)

        except Exception as e:
            logger.error(f"Error in Gemini API call: {str(e)}")
            raise
