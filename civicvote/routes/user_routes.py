from fastapi import APIRouter, Depends, status
from pymongo.database import Database

from civicvote import crud
from civicvote.database import get_db
from civicvote.models.voter_model import VoterCreate
from civicvote.schemas import LoginRequest, PasswordChangeRequest
from civicvote.security import get_current_claims

router = APIRouter(prefix="/user", tags=["User"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(voter: VoterCreate, db: Database = Depends(get_db)):
    saved, token = crud.register(db, voter)
    return {"message": "User created successfully", "user": crud.public_voter(saved), "token": token}


@router.post("/login")
def login(credentials: LoginRequest, db: Database = Depends(get_db)):
    voter, token = crud.login(db, credentials.nationalId, credentials.password)
    return {"token": token, "user": crud.public_voter(voter)}


@router.get("/profile")
def profile(claims: dict = Depends(get_current_claims), db: Database = Depends(get_db)):
    return crud.public_voter(crud.get_profile(db, claims["sub"]))


@router.put("/profile/password")
def update_password(
    body: PasswordChangeRequest,
    claims: dict = Depends(get_current_claims),
    db: Database = Depends(get_db),
):
    crud.change_password(db, claims["sub"], body.currentPassword, body.newPassword)
    return {"message": "Password updated successfully"}
