"""Vote casting.

Two independent paths live here:

* ``cast_vote`` records a ballot inside an election. One ballot per
  (election, voter) is guaranteed by the unique index on the ``ballots``
  collection; the vote record and the count move together in one update of the
  election document.
* ``cast_candidate_vote`` is the older roster-wide path. It counts directly on
  the candidate and uses the voter's global ``hasVoted`` flag, so a voter gets
  one such vote in total. It does not interact with election ballots.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from civicvote import config, crud
from civicvote.errors import (
    DuplicateVoteError,
    ForbiddenError,
    IncompleteProfileError,
    IneligibleAgeError,
    NotFoundError,
    parse_object_id,
)

logger = logging.getLogger(__name__)


def compute_age(dob, today: Optional[date] = None) -> int:
    """Whole years between ``dob`` and ``today``."""
    today = today or date.today()
    if isinstance(dob, datetime):
        dob = dob.date()
    if isinstance(today, datetime):
        today = today.date()
    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age


def _ensure_not_admin(claims: Dict[str, Any]) -> None:
    if claims.get("role") == "admin":
        raise ForbiddenError("Admins are not allowed to vote.")


def cast_vote(
    db: Database,
    claims: Dict[str, Any],
    election_id: str,
    candidate_id: str,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    _ensure_not_admin(claims)

    voter = crud.voters(db).find_one({"_id": parse_object_id(claims["sub"], "voter ID")})
    state = ((voter or {}).get("address") or {}).get("state")
    if voter is None or not voter.get("dob") or not state:
        raise IncompleteProfileError()

    if compute_age(voter["dob"], today) < config.MINIMUM_VOTING_AGE:
        raise IneligibleAgeError(
            f"Forbidden: Voters must be at least {config.MINIMUM_VOTING_AGE} years old."
        )

    election = crud.find_election(db, election_id)
    if election is None:
        raise NotFoundError("Election not found")

    ballots = crud.ballots(db)
    if ballots.find_one({"electionId": election["_id"], "voterId": voter["_id"]}) is not None:
        logger.warning(f"Duplicate vote rejected: voter={voter['_id']} election={election['_id']}")
        raise DuplicateVoteError()

    candidate_oid = parse_object_id(candidate_id, "candidate ID")
    if not any(p.get("candidate") == candidate_oid for p in election.get("parties", [])):
        raise NotFoundError("Candidate not found in this election.")

    voted_at = crud.utcnow()
    ballot = {
        "electionId": election["_id"],
        "voterId": voter["_id"],
        "candidateId": candidate_oid,
        "castAt": voted_at,
    }
    try:
        ballot_id = ballots.insert_one(ballot).inserted_id
    except DuplicateKeyError:
        # Lost a race against a concurrent request from the same voter.
        logger.warning(f"Duplicate vote rejected: voter={voter['_id']} election={election['_id']}")
        raise DuplicateVoteError()

    try:
        result = crud.elections(db).update_one(
            {"_id": election["_id"], "parties": {"$elemMatch": {"candidate": candidate_oid}}},
            {
                "$inc": {"parties.$.voteCount": 1},
                "$push": {"parties.$.votes": {"user": voter["_id"], "votedAt": voted_at, "voterState": state}},
            },
        )
    except Exception:
        # The ballot must not outlive a vote record that was never written.
        logger.error(f"Vote write failed, releasing ballot: voter={voter['_id']} election={election['_id']}")
        ballots.delete_one({"_id": ballot_id})
        raise
    if result.matched_count == 0:
        # Election or entry vanished between the read and the write.
        ballots.delete_one({"_id": ballot_id})
        raise NotFoundError("Candidate not found in this election.")

    logger.info(f"Vote recorded: election={election['_id']} candidate={candidate_oid}")
    return {
        "message": "Vote counted successfully",
        "electionId": str(election["_id"]),
        "candidateId": str(candidate_oid),
        "votedAt": voted_at.isoformat(),
    }


def cast_candidate_vote(db: Database, claims: Dict[str, Any], candidate_id: str) -> Dict[str, Any]:
    _ensure_not_admin(claims)

    candidate_oid = parse_object_id(candidate_id, "candidate ID")
    if crud.candidates(db).find_one({"_id": candidate_oid}, {"_id": 1}) is None:
        raise NotFoundError("Candidate not found")

    voter_oid = parse_object_id(claims["sub"], "voter ID")
    voters = crud.voters(db)
    if voters.find_one({"_id": voter_oid}, {"_id": 1}) is None:
        raise NotFoundError("User not found")

    flipped = voters.find_one_and_update(
        {"_id": voter_oid, "hasVoted": {"$ne": True}},
        {"$set": {"hasVoted": True, "updatedAt": crud.utcnow()}},
    )
    if flipped is None:
        raise DuplicateVoteError("You have already voted")

    try:
        result = crud.candidates(db).update_one(
            {"_id": candidate_oid},
            {"$inc": {"voteCount": 1}, "$push": {"votes": {"user": voter_oid, "votedAt": crud.utcnow()}}},
        )
    except Exception:
        logger.error(f"Roster vote write failed, clearing flag for voter {voter_oid}")
        voters.update_one({"_id": voter_oid}, {"$set": {"hasVoted": False}})
        raise
    if result.matched_count == 0:
        voters.update_one({"_id": voter_oid}, {"$set": {"hasVoted": False}})
        raise NotFoundError("Candidate not found")

    logger.info(f"Roster vote recorded for candidate {candidate_oid}")
    return {"message": "Vote cast successfully", "candidateId": str(candidate_oid)}
