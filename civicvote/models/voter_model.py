from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, constr


class Address(BaseModel):
    street: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: constr(pattern=r"^\d{6}$")


class Relative(BaseModel):
    relationType: Literal["S/O", "W/O", "D/O"]
    relativeName: str = Field(..., min_length=1)


class VoterCreate(BaseModel):
    name: str = Field(..., min_length=1, examples=["Asha Rao"])
    age: int = Field(..., ge=0, le=150)
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=6)
    phone: str = Field(..., min_length=1)
    address: Address
    sex: Literal["Male", "Female", "Other"]
    relative: Relative
    nationalId: str = Field(..., min_length=1, examples=["123412341234"])
    role: Literal["voter", "admin"] = "voter"
    profilePhoto: str = Field(..., min_length=1)
    dob: date
