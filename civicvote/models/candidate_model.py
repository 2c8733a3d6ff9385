from typing import Optional

from pydantic import BaseModel, Field


class CandidateCreate(BaseModel):
    name: str = Field(..., min_length=1)
    party: str = Field(..., min_length=1)
    age: int = Field(default=25, ge=0)
    imageBase64: Optional[str] = None  # raw base64 or a data URL


class CandidateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    party: Optional[str] = Field(default=None, min_length=1)
    age: Optional[int] = Field(default=None, ge=0)
    imageBase64: Optional[str] = None
