"""
Gemini Generation Client

Calls the Gemini ``generateContent`` REST endpoint with the target crop
and the source face and returns the generated image. HTTP and response
failures are mapped onto the generation error kinds.
"""

import base64
import logging
import os
from typing import Any, Dict, List, Optional

import numpy as np
import requests

from ..compositing.utils import decode_image_bytes, encode_png
from ..errors import (
    ContentPolicyBlocked,
    DecodeFailure,
    GenerationTimeout,
    MissingCredential,
    NoImageReturned,
    RateLimited,
    ServiceUnavailable,
)
from .client import GenerationClient

logger = logging.getLogger(__name__)

API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-3-pro-image-preview"
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")
LARGE_PAYLOAD_KB = 3000

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)

RETOUCH_PROMPT = """
You are an expert professional retoucher specializing in photorealistic composite editing.

INPUTS:
- IMAGE 1 (Base Canvas): The target crop. Defines the lighting, angle, skin texture, and shadow hardness.
- IMAGE 2 (Source Identity): The face to blend in.

INSTRUCTIONS:
1. IDENTITY TRANSFER: Seamlessly integrate the facial features of IMAGE 2 into the head/body of IMAGE 1.
2. PHOTOREALISM (CRITICAL): The new face MUST match the exact lighting direction, color temperature, skin tone, ISO noise, and film grain of IMAGE 1. It must NOT look like a smooth sticker.
3. GEOMETRY (CRITICAL): The output MUST maintain the EXACT dimensions, zoom, and composition of IMAGE 1. Do NOT crop or zoom in.
4. EDGE CONSISTENCY: The outer 5% of pixels at the borders MUST remain identical to IMAGE 1. We will be using a soft-stitch algorithm, so the transition must be invisible at the edges.
"""


def resolve_api_key(api_key: Optional[str] = None) -> Optional[str]:
    """Explicit key first, then the environment variables in order."""
    if api_key and api_key.strip():
        return api_key.strip()
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value and value.strip():
            return value.strip()
    return None


def mask_key(api_key: str) -> str:
    return f"{api_key[:4]}****"


def _inline_image(image: np.ndarray) -> Dict[str, Any]:
    data = base64.b64encode(encode_png(image)).decode('ascii')
    return {"inlineData": {"mimeType": "image/png", "data": data}}


class GeminiGenerationClient(GenerationClient):
    """
    Generation client backed by the Gemini image model.

    The crop is sent first and the source face second; the prompt refers
    to them as IMAGE 1 and IMAGE 2.
    """

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODEL,
                 request_timeout: float = 90.0, prompt: str = RETOUCH_PROMPT,
                 session: Optional[requests.Session] = None,
                 base_url: str = API_BASE_URL):
        """
        Initialize client.

        Args:
            api_key: API key; falls back to GEMINI_API_KEY / API_KEY
            model: Model identifier
            request_timeout: Socket timeout for one HTTP request in seconds
            prompt: Instruction text sent with the images
            session: requests session shared by every call; without one each
                call opens its own, so calls on worker threads never share it
            base_url: API root URL
        """
        self.api_key = api_key
        self.model = model
        self.request_timeout = request_timeout
        self.prompt = prompt
        self.session = session
        self.base_url = base_url.rstrip('/')

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_payload(self, source_face: np.ndarray, target_crop: np.ndarray) -> Dict[str, Any]:
        """Request body for ``generateContent``."""
        crop_part = _inline_image(target_crop)
        face_part = _inline_image(source_face)

        crop_kb = len(crop_part["inlineData"]["data"]) // 1024
        face_kb = len(face_part["inlineData"]["data"]) // 1024
        logger.debug(f"Payload prepared. Source face: {face_kb}KB, target crop: {crop_kb}KB")
        if crop_kb > LARGE_PAYLOAD_KB or face_kb > LARGE_PAYLOAD_KB:
            logger.warning("Payload is very large (>3MB). This may cause timeouts.")

        return {
            "contents": [{
                "parts": [{"text": self.prompt}, crop_part, face_part]
            }],
            "generationConfig": {
                "imageConfig": {"aspectRatio": "1:1", "imageSize": "1K"}
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_ONLY_HIGH"}
                for category in SAFETY_CATEGORIES
            ],
        }

    def generate(self, source_face: np.ndarray, target_crop: np.ndarray) -> np.ndarray:
        api_key = resolve_api_key(self.api_key)
        if api_key is None:
            raise MissingCredential("API key is missing from configuration and environment")

        logger.info(f"Sending request to {self.model}. API key present: {mask_key(api_key)}")
        payload = self.build_payload(source_face, target_crop)

        if self.session is not None:
            response = self._post(self.session, payload, api_key)
        else:
            with requests.Session() as session:
                response = self._post(session, payload, api_key)

        self._raise_for_status(response)

        try:
            body = response.json()
        except ValueError as e:
            raise NoImageReturned("Service returned a response that is not JSON",
                                  response.text[:500]) from e

        return self._extract_image(body)

    def _post(self, session: requests.Session, payload: Dict[str, Any],
              api_key: str) -> requests.Response:
        try:
            return session.post(
                self.endpoint,
                json=payload,
                headers={"x-goog-api-key": api_key},
                timeout=self.request_timeout,
            )
        except requests.Timeout as e:
            raise GenerationTimeout(f"Request timed out after {self.request_timeout}s") from e
        except requests.ConnectionError as e:
            raise ServiceUnavailable(f"Could not reach the generation service: {e}") from e

    def _raise_for_status(self, response: requests.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        detail = response.text[:500] if response.text else None
        if status == 429:
            raise RateLimited("Quota exceeded or too many requests (429)", detail)
        if status in (500, 502, 503):
            raise ServiceUnavailable(f"Generation service unavailable ({status})", detail)
        if status == 504:
            raise GenerationTimeout("Deadline expired (504)", detail)
        if status in (401, 403):
            raise MissingCredential(f"API key was rejected ({status})", detail)
        raise NoImageReturned(f"Request failed with status {status}", detail)

    def _extract_image(self, body: Dict[str, Any]) -> np.ndarray:
        block_reason = (body.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise ContentPolicyBlocked(
                f"The request was blocked by the safety policy ({block_reason})."
            )

        candidates = body.get("candidates") or []
        if not candidates:
            raise NoImageReturned(
                "The model returned no candidates. The request may have been blocked entirely."
            )

        candidate = candidates[0]
        finish_reason = candidate.get("finishReason") or "UNKNOWN"

        if finish_reason == "IMAGE_SAFETY":
            raise ContentPolicyBlocked(
                "Generation blocked by Image Safety filters. The combination of "
                "source/target images triggered the safety policy."
            )
        if finish_reason == "SAFETY":
            raise ContentPolicyBlocked("The request was blocked by general safety settings.")

        parts: List[Dict[str, Any]] = (candidate.get("content") or {}).get("parts") or []
        for part in parts:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                try:
                    return decode_image_bytes(base64.b64decode(inline["data"]))
                except (DecodeFailure, ValueError) as e:
                    raise NoImageReturned("The model returned an unreadable image",
                                          str(e)) from e

        texts = " ".join(part["text"] for part in parts if part.get("text")).strip()
        text_response = texts or "No text content returned."
        logger.error(f"Model returned no image. Reason: {finish_reason}, text: {text_response}")
        raise NoImageReturned(
            f"Model returned status '{finish_reason}' but no image.", text_response
        )
