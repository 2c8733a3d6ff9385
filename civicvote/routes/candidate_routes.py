from fastapi import APIRouter, Depends, status
from pymongo.database import Database

from civicvote import crud, reporting, voting
from civicvote.database import get_db
from civicvote.models.candidate_model import CandidateCreate, CandidateUpdate
from civicvote.security import get_current_claims, require_admin

router = APIRouter(prefix="/candidates", tags=["Candidates"])


@router.get("")
def list_candidates(db: Database = Depends(get_db)):
    return crud.serialize(crud.list_candidates(db))


# Declared before /{candidate_id} so "vote" is not taken for an id.
@router.get("/vote/count")
def vote_count(db: Database = Depends(get_db)):
    return crud.serialize(reporting.candidate_vote_counts(db))


@router.post("/vote/{candidate_id}")
def vote_for_candidate(
    candidate_id: str,
    claims: dict = Depends(get_current_claims),
    db: Database = Depends(get_db),
):
    return voting.cast_candidate_vote(db, claims, candidate_id)


@router.get("/{candidate_id}")
def get_candidate(candidate_id: str, db: Database = Depends(get_db)):
    return crud.serialize(crud.get_candidate(db, candidate_id))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_candidate(
    candidate: CandidateCreate,
    _: dict = Depends(require_admin),
    db: Database = Depends(get_db),
):
    saved = crud.create_candidate(db, candidate)
    saved.pop("votes", None)
    return {"candidate": crud.serialize(saved)}


@router.put("/{candidate_id}")
def update_candidate(
    candidate_id: str,
    changes: CandidateUpdate,
    _: dict = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return {"candidate": crud.serialize(crud.update_candidate(db, candidate_id, changes))}


@router.delete("/{candidate_id}")
def delete_candidate(
    candidate_id: str,
    _: dict = Depends(require_admin),
    db: Database = Depends(get_db),
):
    crud.delete_candidate(db, candidate_id)
    return {"message": "Candidate deleted successfully"}
