from pydantic import BaseModel, Field


class Vote(BaseModel):
    candidateId: str = Field(..., min_length=1)
