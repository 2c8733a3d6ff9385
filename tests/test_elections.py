"""Tests for /elections administration, voting and reporting endpoints."""
from datetime import date

import pytest


@pytest.fixture
def ballot(make_candidate, make_election):
    """An election with two candidates; returns (election_id, [candidate ids])."""
    ids = [make_candidate("Meera", "Green"), make_candidate("Ravi", "Blue")]
    return make_election(ids), ids


class TestElectionAdmin:

    def test_create_requires_admin(self, client, make_candidate, voter_token, auth_header):
        candidate_id = make_candidate("Meera", "Green")
        response = client.post(
            "/elections/add",
            json={"title": "T", "dateOfElection": "2030-01-01", "parties": [candidate_id]},
            headers=auth_header(voter_token),
        )
        assert response.status_code == 403

    def test_create_needs_candidates(self, client, admin_token, auth_header):
        response = client.post(
            "/elections/add",
            json={"title": "T", "dateOfElection": "2030-01-01", "parties": []},
            headers=auth_header(admin_token),
        )
        assert response.status_code == 400

    def test_create_rejects_unknown_candidate(self, client, admin_token, auth_header):
        response = client.post(
            "/elections/add",
            json={"title": "T", "dateOfElection": "2030-01-01", "parties": ["64b000000000000000000009"]},
            headers=auth_header(admin_token),
        )
        assert response.status_code == 404

    def test_create_rejects_repeated_candidate(self, client, make_candidate, admin_token, auth_header):
        candidate_id = make_candidate("Meera", "Green")
        response = client.post(
            "/elections/add",
            json={"title": "T", "dateOfElection": "2030-01-01", "parties": [candidate_id, candidate_id]},
            headers=auth_header(admin_token),
        )
        assert response.status_code == 400

    def test_created_election_starts_empty(self, client, ballot):
        election_id, ids = ballot
        body = client.get(f"/elections/{election_id}").json()

        assert body["title"] == "General Election"
        assert [p["candidate"]["_id"] for p in body["parties"]] == ids
        assert [p["candidate"]["name"] for p in body["parties"]] == ["Meera", "Ravi"]
        assert all(p["voteCount"] == 0 for p in body["parties"])
        assert all("votes" not in p for p in body["parties"])

    def test_list_is_sorted_by_date_descending(self, client, make_candidate, make_election):
        candidate_id = make_candidate("Meera", "Green")
        make_election([candidate_id], title="Older", date="2029-01-01")
        make_election([candidate_id], title="Newer", date="2031-01-01")

        titles = [e["title"] for e in client.get("/elections").json()]
        assert titles == ["Newer", "Older"]

    def test_current_election(self, client, make_candidate, make_election):
        assert client.get("/elections/current").json() is None

        candidate_id = make_candidate("Meera", "Green")
        make_election([candidate_id], title="Today", date=date.today().isoformat())
        assert client.get("/elections/current").json()["title"] == "Today"

    def test_patch_only_touches_title_and_date(self, client, ballot, admin_token, auth_header):
        election_id, ids = ballot
        response = client.patch(
            f"/elections/{election_id}",
            json={"title": "Renamed", "parties": []},
            headers=auth_header(admin_token),
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"
        assert len(response.json()["parties"]) == 2

    def test_patch_unknown_election(self, client, admin_token, auth_header):
        response = client.patch(
            "/elections/64b000000000000000000009", json={"title": "X"}, headers=auth_header(admin_token)
        )
        assert response.status_code == 404

    def test_delete_removes_election_and_ballots(self, client, db, ballot, voter_token, admin_token, auth_header):
        election_id, ids = ballot
        client.post(f"/elections/{election_id}/vote", json={"candidateId": ids[0]}, headers=auth_header(voter_token))
        assert db["ballots"].count_documents({}) == 1

        response = client.delete(f"/elections/{election_id}", headers=auth_header(admin_token))

        assert response.status_code == 200
        assert client.get(f"/elections/{election_id}").status_code == 404
        assert db["ballots"].count_documents({}) == 0

    def test_delete_requires_admin(self, client, ballot, voter_token, auth_header):
        election_id, _ = ballot
        response = client.delete(f"/elections/{election_id}", headers=auth_header(voter_token))
        assert response.status_code == 403


class TestElectionVote:

    def test_vote_is_counted(self, client, ballot, voter_token, auth_header):
        election_id, ids = ballot
        response = client.post(
            f"/elections/{election_id}/vote", json={"candidateId": ids[1]}, headers=auth_header(voter_token)
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Vote counted successfully"
        tally = client.get(f"/elections/{election_id}/tally").json()
        assert tally[0]["candidateId"] == ids[1]
        assert tally[0]["count"] == 1
        assert tally[1]["count"] == 0

    def test_second_vote_is_rejected(self, client, ballot, voter_token, auth_header):
        election_id, ids = ballot
        client.post(f"/elections/{election_id}/vote", json={"candidateId": ids[0]}, headers=auth_header(voter_token))
        response = client.post(
            f"/elections/{election_id}/vote", json={"candidateId": ids[1]}, headers=auth_header(voter_token)
        )

        assert response.status_code == 409
        assert [t["count"] for t in client.get(f"/elections/{election_id}/tally").json()] == [1, 0]

    def test_admin_is_forbidden(self, client, ballot, admin_token, auth_header):
        election_id, ids = ballot
        response = client.post(
            f"/elections/{election_id}/vote", json={"candidateId": ids[0]}, headers=auth_header(admin_token)
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Admins are not allowed to vote."

    def test_vote_requires_token(self, client, ballot):
        election_id, ids = ballot
        response = client.post(f"/elections/{election_id}/vote", json={"candidateId": ids[0]})
        assert response.status_code == 401

    def test_minor_is_forbidden(self, client, ballot, signup, auth_header):
        election_id, ids = ballot
        _, token = signup(national_id="700000000000", dob=f"{date.today().year - 10}-01-01")
        response = client.post(
            f"/elections/{election_id}/vote", json={"candidateId": ids[0]}, headers=auth_header(token)
        )
        assert response.status_code == 403

    def test_unknown_candidate(self, client, ballot, voter_token, auth_header):
        election_id, _ = ballot
        response = client.post(
            f"/elections/{election_id}/vote",
            json={"candidateId": "64b000000000000000000009"},
            headers=auth_header(voter_token),
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Candidate not found in this election."


class TestElectionReports:

    def test_results_only_cover_past_elections(self, client, make_candidate, make_election):
        candidate_id = make_candidate("Meera", "Green")
        make_election([candidate_id], title="Past", date="2020-03-01")
        make_election([candidate_id], title="Future", date="2099-03-01")

        results = client.get("/elections/results").json()
        assert [r["title"] for r in results] == ["Past"]
        assert results[0]["result"] == "Winner Declared"
        assert results[0]["winner"]["name"] == "Meera"

    def test_map_results(self, client, ballot, signup, auth_header):
        election_id, ids = ballot
        for i, (state, choice) in enumerate([("Goa", 0), ("Goa", 0), ("Kerala", 1)]):
            _, token = signup(national_id=f"80000000000{i}", state=state)
            client.post(f"/elections/{election_id}/vote", json={"candidateId": ids[choice]}, headers=auth_header(token))

        breakdown = client.get(f"/elections/{election_id}/map-results").json()
        assert breakdown == [
            {"state": "Goa", "results": [{"party": "Green", "votes": 2}], "totalVotes": 2, "leadingParty": "Green"},
            {"state": "Kerala", "results": [{"party": "Blue", "votes": 1}], "totalVotes": 1, "leadingParty": "Blue"},
        ]

    def test_audit_requires_admin(self, client, ballot, voter_token, auth_header):
        election_id, _ = ballot
        response = client.get(f"/elections/{election_id}/audit", headers=auth_header(voter_token))
        assert response.status_code == 403

    def test_audit_lists_voters(self, client, ballot, voter_token, admin_token, auth_header):
        election_id, ids = ballot
        client.post(f"/elections/{election_id}/vote", json={"candidateId": ids[0]}, headers=auth_header(voter_token))

        audit = client.get(f"/elections/{election_id}/audit", headers=auth_header(admin_token)).json()
        assert audit["totalVotes"] == 1
        assert [v["nationalId"] for v in audit["voters"]] == ["100000000001"]
        assert "hashed_password" not in audit["voters"][0]
        assert audit["participants"][0] == {"name": "Meera", "party": "Green", "voteCount": 1}

    def test_reports_for_unknown_election(self, client):
        assert client.get("/elections/64b000000000000000000009/tally").status_code == 404
        assert client.get("/elections/64b000000000000000000009/map-results").status_code == 404
        assert client.get("/elections/not-an-id").status_code == 400
