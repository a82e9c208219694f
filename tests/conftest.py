import pytest


class FakeGeminiClient:
    """Stands in for GeminiImageClient; records prompts and replays a response."""

    def __init__(self, response=None, error=None):
        self.response = response if response is not None else {}
        self.error = error
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep a developer's real key and .env out of the tests."""
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "VITE_GEMINI_API_KEY",
                 "GEMINI_MODEL", "GEMINI_TIMEOUT_MS", "OUTPUT_DIR", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def image_response(mime_type="image/png", data="iVBORw0KGgo="):
    return {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [
                        {"text": "Here is your image"},
                        {"inlineData": {"mimeType": mime_type, "data": data}},
                    ],
                }
            }
        ]
    }
