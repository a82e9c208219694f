"""
Prompt/response controller for the Gemini image generator.

Builds the prompt from a word and a style, issues one generate call and
classifies the reply into a GenerationOutcome. Nothing in here touches
Streamlit; the page only reads `outcome` and `trace` and calls `submit`.
"""

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from config import DEFAULT_MODEL
from gemini_client import GeminiImageClient

logger = logging.getLogger(__name__)

IMAGE_SAFETY = "IMAGE_SAFETY"
DEFAULT_MIME_TYPE = "image/png"
MIME_TYPE_PATTERN = re.compile(r"[\w.+-]+/[\w.+-]+(\s*;.*)?")

PROMPT_TEMPLATE = (
    'Create a high-quality, clear image of a "{subject}" in the style of {style}. '
    "The object should be the central focus of the image, and visually styled "
    "according to the description: {style}. Make it visually appealing and artistic."
)

MISSING_FIELDS_MESSAGE = "Please enter both a word and style"
MISSING_API_KEY_MESSAGE = "API key is missing. Please add your Gemini API key to the .env file."
BLOCKED_MESSAGE = "The image generation was blocked due to safety concerns. Please try a different prompt."
NO_IMAGE_MESSAGE = "Failed to generate an image: no image data returned by the API."
UNKNOWN_ERROR = "Unknown error"


class OutcomeStatus(str, Enum):
    EMPTY = "empty"
    IN_FLIGHT = "in_flight"
    BLOCKED = "blocked"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    EMPTY_RESPONSE = "empty_response"
    TRANSPORT = "transport"


@dataclass(frozen=True)
class ImagePayload:
    mime_type: str
    base64_data: str

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.base64_data, validate=True)


@dataclass(frozen=True)
class GenerationRequest:
    subject: str
    style: str

    @property
    def is_complete(self) -> bool:
        return bool(self.subject.strip()) and bool(self.style.strip())

    @property
    def prompt(self) -> str:
        return build_prompt(self.subject, self.style)


@dataclass(frozen=True)
class GenerationOutcome:
    """Result of one generation attempt. Only one case is active at a time."""

    status: OutcomeStatus
    payload: Optional[ImagePayload] = None
    message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def empty(cls) -> "GenerationOutcome":
        return cls(OutcomeStatus.EMPTY)

    @classmethod
    def in_flight(cls) -> "GenerationOutcome":
        return cls(OutcomeStatus.IN_FLIGHT)

    @classmethod
    def blocked(cls) -> "GenerationOutcome":
        return cls(OutcomeStatus.BLOCKED, message=BLOCKED_MESSAGE)

    @classmethod
    def failed(cls, message: str, kind: ErrorKind) -> "GenerationOutcome":
        return cls(OutcomeStatus.FAILED, message=message, error_kind=kind)

    @classmethod
    def succeeded(cls, payload: ImagePayload) -> "GenerationOutcome":
        return cls(OutcomeStatus.SUCCEEDED, payload=payload)

    @property
    def is_error(self) -> bool:
        return self.status is OutcomeStatus.FAILED


class DiagnosticTrace:
    """Ordered, display-only log of what happened during one request."""

    def __init__(self):
        self._lines: List[str] = []

    def append(self, line: str) -> None:
        logger.debug(line)
        self._lines.append(line)

    def reset(self) -> None:
        self._lines = []

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    @property
    def last(self) -> Optional[str]:
        return self._lines[-1] if self._lines else None

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._lines))

    def __len__(self) -> int:
        return len(self._lines)


def build_prompt(subject: str, style: str) -> str:
    return PROMPT_TEMPLATE.format(subject=subject.strip(), style=style.strip())


def _field(data: Any, *names: str) -> Any:
    """Return the first present key among camelCase/snake_case spellings."""
    if not isinstance(data, dict):
        return None
    for name in names:
        if data.get(name) is not None:
            return data[name]
    return None


def _first_candidate(response: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    candidates = _field(response, "candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    return first if isinstance(first, dict) else None


def _is_safety_blocked(candidate: Optional[Dict[str, Any]]) -> bool:
    safety = _field(candidate, "safetyAttributes", "safety_attributes")
    blocked = _field(safety, "blockedCategories", "blocked_categories")
    if isinstance(blocked, list) and IMAGE_SAFETY in blocked:
        return True
    return _field(candidate, "finishReason", "finish_reason") == IMAGE_SAFETY


def _find_inline_image(candidate: Optional[Dict[str, Any]]) -> Optional[ImagePayload]:
    content = _field(candidate, "content")
    parts = _field(content, "parts")
    if not isinstance(parts, list):
        return None

    for part in parts:
        inline = _field(part, "inlineData", "inline_data")
        data = _field(inline, "data")
        if not data:
            continue
        if isinstance(data, (bytes, bytearray)):
            data = base64.b64encode(bytes(data)).decode("ascii")
        if not isinstance(data, str):
            continue
        mime_type = _field(inline, "mimeType", "mime_type") or DEFAULT_MIME_TYPE
        if not isinstance(mime_type, str) or not MIME_TYPE_PATTERN.fullmatch(mime_type.strip()):
            logger.warning(f"Skipping inline data with malformed MIME type: {mime_type!r}")
            continue
        try:
            base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Skipping inline data that is not valid base64")
            continue
        return ImagePayload(mime_type=mime_type.strip(), base64_data=data)
    return None


def classify_response(response: Any) -> Tuple[GenerationOutcome, List[str]]:
    """
    Classify a normalized generate_content response.

    Checks run in order: safety block, inline image data, then failure.
    Missing or malformed fields count as absent.

    Returns:
        The outcome and the trace lines describing how it was reached
    """
    lines: List[str] = []
    candidate = _first_candidate(response)

    if _is_safety_blocked(candidate):
        lines.append("Image was blocked due to safety concerns")
        return GenerationOutcome.blocked(), lines

    payload = _find_inline_image(candidate)
    if payload is not None:
        lines.append("Successfully extracted image data")
        lines.append(f"Image MIME type: {payload.mime_type}")
        return GenerationOutcome.succeeded(payload), lines

    lines.append("No image data found in the response")
    lines.append(f"API Response: {json.dumps(response, indent=2, default=str)}")
    return GenerationOutcome.failed(NO_IMAGE_MESSAGE, ErrorKind.EMPTY_RESPONSE), lines


class ImageGeneratorController:
    """Owns the interaction state for one page session."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        timeout_ms: Optional[int] = None,
        client: Optional[Any] = None
    ):
        self.api_key = (api_key or "").strip() or None
        self.model = model
        self.timeout_ms = timeout_ms
        self._client = client
        self._outcome = GenerationOutcome.empty()
        self.trace = DiagnosticTrace()
        self.last_request: Optional[GenerationRequest] = None

    @property
    def outcome(self) -> GenerationOutcome:
        return self._outcome

    @property
    def in_flight(self) -> bool:
        return self._outcome.status is OutcomeStatus.IN_FLIGHT

    def _get_client(self):
        if self._client is None:
            self._client = GeminiImageClient(self.api_key, model=self.model, timeout_ms=self.timeout_ms)
        return self._client

    def _finish(self, outcome: GenerationOutcome) -> GenerationOutcome:
        self._outcome = outcome
        return outcome

    async def submit(self, subject: str, style: str) -> GenerationOutcome:
        """
        Generate an image for a word in a given style.

        Never raises for validation, API or transport problems; those end up
        as a FAILED outcome with a message.
        """
        self.trace.reset()
        request = GenerationRequest(subject=subject or "", style=style or "")
        self.last_request = request

        if not request.is_complete:
            return self._finish(GenerationOutcome.failed(MISSING_FIELDS_MESSAGE, ErrorKind.VALIDATION))

        if not self.api_key:
            return self._finish(GenerationOutcome.failed(MISSING_API_KEY_MESSAGE, ErrorKind.VALIDATION))

        self._outcome = GenerationOutcome.in_flight()
        prompt = request.prompt

        try:
            self.trace.append(f"Sending prompt: {prompt}")
            response = await self._get_client().generate(prompt)
            self.trace.append("Received response from Gemini API")

            self.trace.append("Processing response")
            outcome, lines = classify_response(response)
            for line in lines:
                self.trace.append(line)

        except Exception as e:
            description = str(e) or UNKNOWN_ERROR
            logger.error(f"Error generating image: {description}")
            self.trace.append(f"Error: {description}")
            outcome = GenerationOutcome.failed(f"Failed to generate image: {description}", ErrorKind.TRANSPORT)

        return self._finish(outcome)
