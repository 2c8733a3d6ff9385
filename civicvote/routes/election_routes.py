from fastapi import APIRouter, Depends, status
from pymongo.database import Database

from civicvote import crud, reporting, voting
from civicvote.database import get_db
from civicvote.models.election_model import ElectionCreate, ElectionUpdate
from civicvote.models.vote_model import Vote
from civicvote.security import get_current_claims, require_admin

router = APIRouter(prefix="/elections", tags=["Election"])


# ------------------------------
# Admin-only
# ------------------------------
@router.post("/add", status_code=status.HTTP_201_CREATED)
def create_election(
    election: ElectionCreate,
    _: dict = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return crud.serialize(crud.create_election(db, election))


@router.patch("/{election_id}")
def update_election(
    election_id: str,
    changes: ElectionUpdate,
    _: dict = Depends(require_admin),
    db: Database = Depends(get_db),
):
    updated = crud.update_election(db, election_id, changes)
    return crud.serialize(crud.populate_election(db, updated))


@router.delete("/{election_id}")
def delete_election(
    election_id: str,
    _: dict = Depends(require_admin),
    db: Database = Depends(get_db),
):
    crud.delete_election(db, election_id)
    return {"message": "Election deleted successfully"}


@router.get("/{election_id}/audit")
def audit(
    election_id: str,
    _: dict = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return crud.serialize(reporting.audit_trail(db, election_id))


# ------------------------------
# Public & voter
# ------------------------------
@router.get("")
def list_elections(db: Database = Depends(get_db)):
    return crud.serialize(crud.list_elections(db))


@router.get("/current")
def current_election(db: Database = Depends(get_db)):
    # null when nothing is scheduled for today
    return crud.serialize(crud.current_election(db))


@router.get("/results")
def results(db: Database = Depends(get_db)):
    return crud.serialize(reporting.results_for_completed_elections(db))


@router.get("/{election_id}")
def get_election(election_id: str, db: Database = Depends(get_db)):
    return crud.serialize(crud.populate_election(db, crud.get_election(db, election_id)))


@router.post("/{election_id}/vote")
def cast_vote(
    election_id: str,
    vote: Vote,
    claims: dict = Depends(get_current_claims),
    db: Database = Depends(get_db),
):
    return voting.cast_vote(db, claims, election_id, vote.candidateId)


@router.get("/{election_id}/tally")
def tally(election_id: str, db: Database = Depends(get_db)):
    return crud.serialize(reporting.tally(db, election_id))


@router.get("/{election_id}/map-results")
def map_results(election_id: str, db: Database = Depends(get_db)):
    return reporting.geographic_breakdown(db, election_id)
