"""Card link models"""

from pydantic import BaseModel, Field


class CardLinkCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    url: str = Field(..., min_length=1, max_length=2000)
