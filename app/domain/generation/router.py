"""Image generation router"""

import logging

from fastapi import APIRouter, Depends

from ...auth import get_current_user
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import GenerateRequest, GenerateResponse
from .service import build_prompt, generate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generate", tags=["Generation"])

# Runs after get_current_user, so the limit is counted per account
generation_limit = create_rate_limiter(limit=5, window_seconds=60, key_prefix="generate")


@router.post("", response_model=GenerateResponse)
async def generate_design(
    data: GenerateRequest,
    current_user: User = Depends(get_current_user),
    _: None = Depends(generation_limit),
):
    """Generate a tattoo design from a prompt or from the questionnaire answers"""
    answers = (data.subject, data.style, data.placement, data.color)
    if (data.prompt or "").strip() or not any(answers):
        prompt = (data.prompt or "").strip()
    else:
        prompt = build_prompt(*answers)
    image_url = await generate(prompt)
    return GenerateResponse(imageUrl=image_url, prompt=prompt)
