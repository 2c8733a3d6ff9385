import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from fastapi.encoders import jsonable_encoder
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from civicvote import config, storage
from civicvote.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    ValidationError,
    parse_object_id,
)
from civicvote.models.candidate_model import CandidateCreate, CandidateUpdate
from civicvote.models.election_model import ElectionCreate, ElectionUpdate
from civicvote.models.voter_model import VoterCreate
from civicvote.security import dummy_verify, hash_password, issue_token, verify_password

logger = logging.getLogger(__name__)

CANDIDATE_SUMMARY_FIELDS = ("name", "party", "image")


# ------------------------------
# Helpers
# ------------------------------
def utcnow() -> datetime:
    # Naive UTC, the form pymongo hands back.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_datetime(value: date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def serialize(doc: Any) -> Any:
    """Make a Mongo document JSON friendly (ObjectId -> str, dates -> ISO)."""
    return jsonable_encoder(doc, custom_encoder={ObjectId: str})


def public_voter(voter: Dict[str, Any]) -> Dict[str, Any]:
    data = {k: v for k, v in voter.items() if k != "hashed_password"}
    return serialize(data)


def voters(db: Database):
    return db[config.VOTERS_COLLECTION_NAME]


def candidates(db: Database):
    return db[config.CANDIDATES_COLLECTION_NAME]


def elections(db: Database):
    return db[config.ELECTIONS_COLLECTION_NAME]


def ballots(db: Database):
    return db[config.BALLOTS_COLLECTION_NAME]


# ------------------------------
# Voters / authentication
# ------------------------------
def _token_for(voter: Dict[str, Any]) -> str:
    return issue_token({"sub": str(voter["_id"]), "role": voter["role"]})


def register(db: Database, data: VoterCreate) -> Tuple[Dict[str, Any], str]:
    record = data.model_dump()
    record["hashed_password"] = hash_password(record.pop("password"))
    record["dob"] = as_datetime(data.dob)
    record["hasVoted"] = False
    record["isVerified"] = False
    now = utcnow()
    record["createdAt"] = now
    record["updatedAt"] = now

    try:
        result = voters(db).insert_one(record)
    except DuplicateKeyError:
        # Either the national id or the single-admin index rejected the insert.
        if data.role == "admin" and voters(db).find_one({"role": "admin"}) is not None:
            logger.warning("Signup rejected: admin already exists")
            raise ConflictError("Admin user already exists")
        logger.warning("Signup rejected: national ID already registered")
        raise ValidationError("A voter with this national ID already exists")

    record["_id"] = result.inserted_id
    logger.info(f"Registered {record['role']} {result.inserted_id}")
    return record, _token_for(record)


def login(db: Database, national_id: str, password: str) -> Tuple[Dict[str, Any], str]:
    voter = voters(db).find_one({"nationalId": national_id})
    if voter is None:
        dummy_verify()
        logger.warning("Failed login attempt")
        raise AuthError("Invalid credentials")
    if not verify_password(password, voter.get("hashed_password")):
        logger.warning("Failed login attempt")
        raise AuthError("Invalid credentials")
    return voter, _token_for(voter)


def get_voter(db: Database, voter_id: str) -> Optional[Dict[str, Any]]:
    return voters(db).find_one({"_id": parse_object_id(voter_id, "voter ID")})


def get_profile(db: Database, voter_id: str) -> Dict[str, Any]:
    voter = get_voter(db, voter_id)
    if voter is None:
        raise NotFoundError("User not found")
    return voter


def change_password(db: Database, voter_id: str, current_password: str, new_password: str) -> None:
    voter = get_profile(db, voter_id)
    if not verify_password(current_password, voter.get("hashed_password")):
        raise AuthError("Current password is incorrect")
    voters(db).update_one(
        {"_id": voter["_id"]},
        {"$set": {"hashed_password": hash_password(new_password), "updatedAt": utcnow()}},
    )
    logger.info(f"Password updated for voter {voter['_id']}")


# ------------------------------
# Candidates
# ------------------------------
def create_candidate(db: Database, data: CandidateCreate) -> Dict[str, Any]:
    record = {
        "name": data.name,
        "party": data.party,
        "age": data.age,
        "voteCount": 0,
        "votes": [],
        "createdAt": utcnow(),
    }
    if data.imageBase64:
        record["imagePublicId"], record["image"] = storage.save_base64_image(
            data.imageBase64, prefix="candidate"
        )

    result = candidates(db).insert_one(record)
    record["_id"] = result.inserted_id
    logger.info(f"Created candidate {result.inserted_id} ({data.party})")
    return record


def list_candidates(db: Database) -> List[Dict[str, Any]]:
    return list(candidates(db).find({}, {"votes": 0}))


def get_candidate(db: Database, candidate_id: str) -> Dict[str, Any]:
    candidate = candidates(db).find_one(
        {"_id": parse_object_id(candidate_id, "candidate ID")}, {"votes": 0}
    )
    if candidate is None:
        raise NotFoundError("Candidate not found")
    return candidate


def update_candidate(db: Database, candidate_id: str, data: CandidateUpdate) -> Dict[str, Any]:
    existing = get_candidate(db, candidate_id)
    changes = data.model_dump(exclude_unset=True, exclude={"imageBase64"})
    changes = {k: v for k, v in changes.items() if v is not None}

    if data.imageBase64:
        changes["imagePublicId"], changes["image"] = storage.save_base64_image(
            data.imageBase64, prefix="candidate"
        )

    if not changes:
        return existing

    updated = candidates(db).find_one_and_update(
        {"_id": existing["_id"]},
        {"$set": changes},
        projection={"votes": 0},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        storage.release_image(changes.get("imagePublicId"))
        raise NotFoundError("Candidate not found")
    if "imagePublicId" in changes:
        # The old image goes only once the record points at its replacement.
        storage.release_image(existing.get("imagePublicId"))
    logger.info(f"Updated candidate {existing['_id']}: {sorted(changes)}")
    return updated


def delete_candidate(db: Database, candidate_id: str) -> None:
    deleted = candidates(db).find_one_and_delete({"_id": parse_object_id(candidate_id, "candidate ID")})
    if deleted is None:
        raise NotFoundError("Candidate not found")
    storage.release_image(deleted.get("imagePublicId"))
    logger.info(f"Deleted candidate {deleted['_id']}")


def candidates_by_id(db: Database, ids) -> Dict[ObjectId, Dict[str, Any]]:
    ids = list({i for i in ids if i is not None})
    if not ids:
        return {}
    return {c["_id"]: c for c in candidates(db).find({"_id": {"$in": ids}}, {"votes": 0})}


# ------------------------------
# Elections
# ------------------------------
def create_election(db: Database, data: ElectionCreate) -> Dict[str, Any]:
    candidate_ids = [parse_object_id(cid, "candidate ID") for cid in data.parties]
    if len(set(candidate_ids)) != len(candidate_ids):
        raise ValidationError("Candidate ids must be distinct")

    known = candidates_by_id(db, candidate_ids)
    missing = [str(cid) for cid in candidate_ids if cid not in known]
    if missing:
        raise NotFoundError(f"Candidate not found: {', '.join(missing)}")

    record = {
        "title": data.title,
        "dateOfElection": as_datetime(data.dateOfElection),
        "createdAt": utcnow(),
        "parties": [{"candidate": cid, "voteCount": 0, "votes": []} for cid in candidate_ids],
    }
    result = elections(db).insert_one(record)
    record["_id"] = result.inserted_id
    logger.info(f"Created election {result.inserted_id} with {len(candidate_ids)} candidates")
    return record


def find_election(db: Database, election_id: str) -> Optional[Dict[str, Any]]:
    return elections(db).find_one({"_id": parse_object_id(election_id, "election ID")})


def get_election(db: Database, election_id: str) -> Dict[str, Any]:
    election = find_election(db, election_id)
    if election is None:
        raise NotFoundError("Election not found")
    return election


def populate_election(db: Database, election: Dict[str, Any], include_votes: bool = False) -> Dict[str, Any]:
    """Replace candidate references with {_id, name, party, image}."""
    lookup = candidates_by_id(db, (p.get("candidate") for p in election.get("parties", [])))
    parties = []
    for party in election.get("parties", []):
        cand = lookup.get(party.get("candidate"))
        summary = {"_id": party.get("candidate")}
        for field in CANDIDATE_SUMMARY_FIELDS:
            summary[field] = cand.get(field) if cand else None
        entry = {"candidate": summary, "voteCount": party.get("voteCount", 0)}
        if include_votes:
            entry["votes"] = party.get("votes", [])
        parties.append(entry)
    populated = {k: v for k, v in election.items() if k != "parties"}
    populated["parties"] = parties
    return populated


def list_elections(db: Database) -> List[Dict[str, Any]]:
    found = elections(db).find().sort("dateOfElection", DESCENDING)
    return [populate_election(db, e) for e in found]


def current_election(db: Database, today: date = None) -> Optional[Dict[str, Any]]:
    today = today or date.today()
    start = as_datetime(today)
    election = elections(db).find_one(
        {"dateOfElection": {"$gte": start, "$lt": start + timedelta(days=1)}}
    )
    return populate_election(db, election) if election else None


def update_election(db: Database, election_id: str, data: ElectionUpdate) -> Dict[str, Any]:
    oid = parse_object_id(election_id, "election ID")
    changes = {}
    if data.title is not None:
        changes["title"] = data.title
    if data.dateOfElection is not None:
        changes["dateOfElection"] = as_datetime(data.dateOfElection)
    if not changes:
        raise ValidationError("Nothing to update")

    updated = elections(db).find_one_and_update(
        {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )
    if updated is None:
        raise NotFoundError("Election not found")
    logger.info(f"Updated election {oid}: {sorted(changes)}")
    return updated


def delete_election(db: Database, election_id: str) -> None:
    oid = parse_object_id(election_id, "election ID")
    result = elections(db).delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise NotFoundError("Election not found")
    ballots(db).delete_many({"electionId": oid})
    logger.info(f"Deleted election {oid}")
