"""Tallies, winners and breakdowns derived from the election ledger.

Reads are not isolated from concurrent votes; a report may lag a vote that is
being written at the same moment.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Mapping

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.database import Database

from civicvote import crud

logger = logging.getLogger(__name__)

WINNER_DECLARED = "Winner Declared"
TIE = "Tie"
NO_PARTICIPANTS = "No candidates participated."

AUDIT_VOTER_FIELDS = (
    "name", "nationalId", "profilePhoto", "dob", "address", "isVerified", "sex", "relative",
)


def _participants(election: Mapping[str, Any], candidates: Mapping[ObjectId, Mapping[str, Any]]):
    rows = []
    for party in election.get("parties", []):
        cand = candidates.get(party.get("candidate")) or {}
        rows.append({
            "candidateId": party.get("candidate"),
            "name": cand.get("name"),
            "party": cand.get("party"),
            "voteCount": party.get("voteCount", 0),
        })
    # sorted() is stable: equal counts keep entry order
    return sorted(rows, key=lambda r: r["voteCount"], reverse=True)


def declare_result(election: Mapping[str, Any], candidates: Mapping[ObjectId, Mapping[str, Any]]) -> Dict[str, Any]:
    summary = {
        "electionId": election.get("_id"),
        "title": election.get("title"),
        "dateOfElection": election.get("dateOfElection"),
    }
    participants = _participants(election, candidates)
    if not participants:
        summary.update({"result": NO_PARTICIPANTS, "totalVotes": 0, "participants": []})
        return summary

    top = participants[0]["voteCount"]
    leaders = [p for p in participants if p["voteCount"] == top]
    summary["totalVotes"] = sum(p["voteCount"] for p in participants)
    summary["participants"] = participants
    if len(leaders) > 1:
        summary["result"] = TIE
        summary["tiedWinners"] = leaders
        summary["winner"] = None
    else:
        summary["result"] = WINNER_DECLARED
        summary["winner"] = leaders[0]
    return summary


def _candidate_lookup(db: Database, election: Mapping[str, Any]):
    return crud.candidates_by_id(db, (p.get("candidate") for p in election.get("parties", [])))


def tally(db: Database, election_id: str) -> List[Dict[str, Any]]:
    election = crud.get_election(db, election_id)
    return [
        {"candidateId": p["candidateId"], "name": p["name"], "party": p["party"], "count": p["voteCount"]}
        for p in _participants(election, _candidate_lookup(db, election))
    ]


def results_for_completed_elections(db: Database, as_of: datetime = None) -> List[Dict[str, Any]]:
    as_of = as_of or crud.utcnow()
    completed = crud.elections(db).find({"dateOfElection": {"$lt": as_of}}).sort("dateOfElection", DESCENDING)
    logger.debug(f"Building results for elections before {as_of.isoformat()}")
    return [declare_result(e, _candidate_lookup(db, e)) for e in completed]


def audit_trail(db: Database, election_id: str) -> Dict[str, Any]:
    election = crud.get_election(db, election_id)

    voter_ids = []
    seen = set()
    for party in election.get("parties", []):
        for vote in party.get("votes", []):
            user = vote.get("user")
            if user is not None and user not in seen:
                seen.add(user)
                voter_ids.append(user)

    projection = {field: 1 for field in AUDIT_VOTER_FIELDS}
    found = {v["_id"]: v for v in crud.voters(db).find({"_id": {"$in": voter_ids}}, projection)}
    voters = [found[vid] for vid in voter_ids if vid in found]

    participants = _participants(election, _candidate_lookup(db, election))
    return {
        "_id": election["_id"],
        "title": election.get("title"),
        "dateOfElection": election.get("dateOfElection"),
        "totalVotes": len(voters),
        "participants": [
            {"name": p["name"], "party": p["party"], "voteCount": p["voteCount"]} for p in participants
        ],
        "voters": voters,
    }


def group_votes_by_state(
    election: Mapping[str, Any], candidates: Mapping[ObjectId, Mapping[str, Any]]
) -> List[Dict[str, Any]]:
    """Per-state, per-party vote counts for one election.

    Vote records without a state, and votes for candidates that no longer
    resolve to a party, are left out entirely.
    """
    counts = defaultdict(lambda: defaultdict(int))
    for entry in election.get("parties", []):
        party = (candidates.get(entry.get("candidate")) or {}).get("party")
        if not party:
            continue
        for vote in entry.get("votes", []):
            state = vote.get("voterState")
            if not state or vote.get("user") is None:
                continue
            counts[state][party] += 1

    breakdown = []
    for state in sorted(counts):
        results = sorted(
            ({"party": party, "votes": votes} for party, votes in counts[state].items()),
            key=lambda r: (-r["votes"], r["party"]),
        )
        breakdown.append({
            "state": state,
            "results": results,
            "totalVotes": sum(r["votes"] for r in results),
            "leadingParty": results[0]["party"],
        })
    return breakdown


def geographic_breakdown(db: Database, election_id: str) -> List[Dict[str, Any]]:
    election = crud.get_election(db, election_id)
    return group_votes_by_state(election, _candidate_lookup(db, election))


def candidate_vote_counts(db: Database) -> List[Dict[str, Any]]:
    """Roster-wide counts from the candidate vote path, highest first."""
    found = crud.candidates(db).find({}, {"name": 1, "party": 1, "voteCount": 1}).sort("voteCount", DESCENDING)
    return [
        {"_id": c["_id"], "name": c.get("name"), "party": c.get("party"), "count": c.get("voteCount", 0)}
        for c in found
    ]
