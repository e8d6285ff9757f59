"""Image generation schemas"""

from typing import Optional

from pydantic import BaseModel


class GenerateRequest(BaseModel):
    """Either a free-form prompt or the questionnaire answers"""

    prompt: Optional[str] = None
    subject: Optional[str] = None
    style: Optional[str] = None
    placement: Optional[str] = None
    color: Optional[str] = None


class GenerateResponse(BaseModel):
    imageUrl: str
    prompt: str
