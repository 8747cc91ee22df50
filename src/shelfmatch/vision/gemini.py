# ABOUTME: Gemini implementation of VisionService over the generateContent REST endpoint.
# ABOUTME: Sends the shelf crop and candidate images inline and parses the JSON reply.

import base64
import logging
from typing import Any

from shelfmatch.catalog.types import CandidateProduct, ExtractedMetadata
from shelfmatch.errors import ClassificationFailure
from shelfmatch.http import HttpClient, HttpFetchError
from shelfmatch.vision.parsing import parse_joint_selection, parse_tier_comparison
from shelfmatch.vision.prompts import (
    JOINT_SELECTION_PROMPT,
    TIER_COMPARISON_PROMPT,
    describe_candidates,
    metadata_values,
    render_prompt,
)
from shelfmatch.vision.service import JointSelection, TierComparison

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
_DEFAULT_MODEL = "gemini-2.5-flash"
_PNG_MAGIC = b"\x89PNG"
_WEBP_MAGIC = b"WEBP"


def _mime_type(image: bytes) -> str:
    """Guess an image MIME type from its leading bytes (JPEG if unrecognized)."""
    if image.startswith(_PNG_MAGIC):
        return "image/png"
    if image[8:12] == _WEBP_MAGIC:
        return "image/webp"
    return "image/jpeg"


def _image_part(image: bytes) -> dict[str, Any]:
    return {
        "inline_data": {
            "mime_type": _mime_type(image),
            "data": base64.b64encode(image).decode("ascii"),
        }
    }


def _reply_text(data: dict[str, Any]) -> str:
    """Extract the concatenated text parts of the first response candidate."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ClassificationFailure("Vision response contained no candidates") from exc
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    if not text.strip():
        raise ClassificationFailure("Vision response contained no text")
    return text


class GeminiVisionClient:
    """VisionService backed by Google's Gemini generateContent API.

    Uses a dependency-injected HttpClient for testability; candidate reference
    images are downloaded through the same client. Requests are deterministic
    (temperature 0) and ask for a JSON reply.
    """

    def __init__(
        self,
        http_client: HttpClient,
        *,
        api_key: str,
        base_url: str = _DEFAULT_BASE_URL,
        model: str = _DEFAULT_MODEL,
        visual_threshold: float = 0.70,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._endpoint = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._visual_threshold = visual_threshold

    async def compare(
        self,
        crop: bytes,
        candidate: CandidateProduct,
        metadata: ExtractedMetadata,
    ) -> TierComparison:
        """Classify one candidate against the shelf crop into a match tier."""
        if not candidate.image_url:
            raise ClassificationFailure(f"Candidate {candidate.key} has no reference image")

        reference = await self._fetch_image(candidate.image_url)
        values = metadata_values(metadata)
        values.update(
            {
                "candidateTitle": candidate.title,
                "candidateBrand": candidate.brand or "N/A",
                "candidateSize": candidate.size or "N/A",
            }
        )
        prompt = render_prompt(TIER_COMPARISON_PROMPT, values)
        text = await self._generate(prompt, [crop, reference])
        comparison = parse_tier_comparison(text)
        logger.debug(
            "Compared %s: %s (confidence %.2f, visual %.2f)",
            candidate.key,
            comparison.match_tier.value,
            comparison.confidence,
            comparison.visual_similarity,
        )
        return comparison

    async def select(
        self,
        crop: bytes,
        metadata: ExtractedMetadata,
        candidates: list[CandidateProduct],
    ) -> JointSelection:
        """Ask for the single best match among ``candidates`` in one call."""
        images = [crop]
        for candidate in candidates:
            if not candidate.image_url:
                raise ClassificationFailure(f"Candidate {candidate.key} has no reference image")
            images.append(await self._fetch_image(candidate.image_url))

        values = metadata_values(metadata)
        values.update(
            {
                "candidateCount": str(len(candidates)),
                "candidateDescriptions": describe_candidates(candidates),
                "candidateImageCount": str(len(candidates) + 1),
                "visualThreshold": f"{self._visual_threshold:.2f}",
            }
        )
        prompt = render_prompt(JOINT_SELECTION_PROMPT, values)
        text = await self._generate(prompt, images)
        return parse_joint_selection(text, len(candidates))

    async def _fetch_image(self, url: str) -> bytes:
        try:
            return await self._http.get_bytes(url)
        except HttpFetchError as exc:
            raise ClassificationFailure(f"Could not fetch reference image {url}: {exc}") from exc

    async def _generate(self, prompt: str, images: list[bytes]) -> str:
        """Send one generateContent request and return the reply text.

        Raises:
            ClassificationFailure: On transport errors or an empty reply.
            RateLimitFailure: When the API keeps throttling after retries.
        """
        payload = {
            "contents": [
                {"parts": [{"text": prompt}, *(_image_part(image) for image in images)]}
            ],
            "generationConfig": {
                "temperature": 0,
                "responseMimeType": "application/json",
            },
        }
        try:
            data = await self._http.post_json(
                self._endpoint, payload, params={"key": self._api_key}
            )
        except HttpFetchError as exc:
            raise ClassificationFailure(f"Vision request failed: {exc}") from exc
        return _reply_text(data)
