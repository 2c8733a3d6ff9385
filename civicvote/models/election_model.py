from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class ElectionCreate(BaseModel):
    title: str = Field(..., min_length=1, examples=["State Assembly 2026"])
    dateOfElection: date
    parties: List[str] = Field(..., min_length=1, description="Candidate ids taking part")


class ElectionUpdate(BaseModel):
    # Vote counts and vote records are deliberately not editable.
    title: Optional[str] = Field(default=None, min_length=1)
    dateOfElection: Optional[date] = None
