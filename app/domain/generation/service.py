"""
Tattoo design generation through an OpenAI-compatible images API.

Prompts come either straight from the user or from the four-question flow
(subject, style, placement, color) via build_prompt().
"""

import logging
from typing import Optional

import httpx

from ...config import IMAGE_GENERATION_SIZE, IMAGE_GENERATION_TIMEOUT, IMAGE_GENERATION_URL, OPENAI_API_KEY
from ...shared.errors import GenerationError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "Failed to generate image"


def build_prompt(subject: str, style: str, placement: str, color: str) -> str:
    answers = [(subject or "").strip(), (style or "").strip(), (placement or "").strip(), (color or "").strip()]
    if not all(answers):
        raise ValidationError("Please answer all questions before generating")
    subject, style, placement, color = answers
    return (
        f"Create a {color.lower()} tattoo design of a {subject} in {style} style, "
        f"designed to be placed on the {placement}. "
        "The design should be detailed and suitable for a tattoo, with clean lines and proper contrast."
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return DEFAULT_ERROR
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return DEFAULT_ERROR


async def generate(prompt: Optional[str], client: Optional[httpx.AsyncClient] = None) -> str:
    """
    Generate one image for the prompt and return its URL.

    Raises:
        ValidationError: empty prompt
        GenerationError: provider failure, carrying the provider's own message
    """
    prompt = (prompt or "").strip()
    if not prompt:
        raise ValidationError("Please enter a description for your tattoo.")
    if not OPENAI_API_KEY:
        logger.error("❌ OPENAI_API_KEY not configured")
        raise GenerationError("Image generation is not configured", status_code=503)

    payload = {"prompt": prompt, "n": 1, "size": IMAGE_GENERATION_SIZE}
    headers = {"Authorization": f"Bearer {OPENAI_API_KEY}", "Content-Type": "application/json"}

    logger.info(f"🎨 Generating image ({len(prompt)} char prompt)")
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=IMAGE_GENERATION_TIMEOUT) as own_client:
                response = await own_client.post(IMAGE_GENERATION_URL, json=payload, headers=headers)
        else:
            response = await client.post(IMAGE_GENERATION_URL, json=payload, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"❌ Image generation request failed: {e}")
        raise GenerationError(DEFAULT_ERROR) from e

    if response.status_code >= 400:
        message = _error_message(response)
        logger.error(f"❌ Image generation failed: HTTP {response.status_code} - {message}")
        raise GenerationError(message)

    try:
        data = response.json()
        image_url = data["data"][0]["url"]
    except (ValueError, KeyError, IndexError, TypeError):
        image_url = None
    if not image_url:
        raise GenerationError("No image URL received from the API")

    logger.info("✅ Image generated")
    return image_url
