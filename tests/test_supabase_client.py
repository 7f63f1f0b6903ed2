"""
Unit tests for similarity/supabase_client.py

Tests the Supabase REST client with mocked HTTP responses.
"""
import json
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses
from responses import matchers

from similarity.errors import StoreError
from similarity.supabase_client import RECORD_SELECT, SupabaseStore

BASE = "https://project.supabase.co/rest/v1"


@pytest.fixture
def store():
    return SupabaseStore("https://project.supabase.co/", "service-key")


class TestFetchSubmissions:
    """Tests for fetch_submissions method."""

    @responses.activate
    def test_fetch_submissions(self, store):
        """Rows are mapped to submissions, student_id becomes the author."""
        responses.add(
            responses.GET,
            f"{BASE}/coding_lab_submissions",
            json=[
                {"id": "s1", "student_id": "u1", "source_code": "int x;", "language": "c", "score": 95},
                {"id": "s2", "student_id": "u2", "source_code": None, "language": "c", "score": None},
            ],
            status=200,
            match=[matchers.query_param_matcher({
                "select": "id,student_id,source_code,language,score",
                "lab_id": "eq.lab-1",
                "order": "score.desc.nullslast",
            })],
        )

        submissions = store.fetch_submissions("lab-1")

        assert [s.id for s in submissions] == ["s1", "s2"]
        assert submissions[0].author_id == "u1"
        assert submissions[0].score == 95.0
        assert submissions[1].source_code == ""
        assert submissions[1].score is None

    @responses.activate
    def test_sends_service_key(self, store):
        """Both apikey and bearer headers carry the service key."""
        responses.add(responses.GET, f"{BASE}/coding_lab_submissions", json=[], status=200)

        store.fetch_submissions("lab-1")

        headers = responses.calls[0].request.headers
        assert headers["apikey"] == "service-key"
        assert headers["Authorization"] == "Bearer service-key"

    @responses.activate
    def test_error_status_raises(self, store):
        """HTTP errors become StoreError."""
        responses.add(
            responses.GET,
            f"{BASE}/coding_lab_submissions",
            json={"message": "permission denied"},
            status=401,
        )

        with pytest.raises(StoreError, match="401"):
            store.fetch_submissions("lab-1")

    @responses.activate
    def test_connection_error_raises(self, store):
        """Network failures become StoreError."""
        responses.add(
            responses.GET,
            f"{BASE}/coding_lab_submissions",
            body=requests.ConnectionError("connection refused"),
        )

        with pytest.raises(StoreError, match="connection refused"):
            store.fetch_submissions("lab-1")


class TestReplaceResults:
    """Tests for replace_results method."""

    @responses.activate
    def test_single_rpc_call(self, store):
        """Delete and insert go through one database function call."""
        rows = [{
            "lab_id": "lab-1",
            "submission_1_id": "s1",
            "submission_2_id": "s2",
            "similarity_score": 88.5,
            "matching_lines": 4,
            "flagged": True,
        }]
        responses.add(
            responses.POST,
            f"{BASE}/rpc/replace_plagiarism_results",
            json=1,
            status=200,
        )

        assert store.replace_results("lab-1", rows) == 1
        assert len(responses.calls) == 1
        assert json.loads(responses.calls[0].request.body) == {"p_lab_id": "lab-1", "p_rows": rows}

    @responses.activate
    def test_empty_rows(self, store):
        """An empty list still clears the lab."""
        responses.add(responses.POST, f"{BASE}/rpc/replace_plagiarism_results", json=0, status=200)

        assert store.replace_results("lab-1", []) == 0
        assert json.loads(responses.calls[0].request.body)["p_rows"] == []

    @responses.activate
    def test_failure_raises(self, store):
        responses.add(
            responses.POST,
            f"{BASE}/rpc/replace_plagiarism_results",
            json={"message": "violates not-null constraint"},
            status=400,
        )

        with pytest.raises(StoreError, match="not-null"):
            store.replace_results("lab-1", [])


class TestListResults:

    @responses.activate
    def test_list_results(self, store):
        records = [{"id": "r1", "similarity_score": 91.0, "flagged": True}]
        responses.add(
            responses.GET,
            f"{BASE}/coding_lab_plagiarism",
            json=records,
            status=200,
            match=[matchers.query_param_matcher({
                "select": RECORD_SELECT,
                "lab_id": "eq.lab-1",
                "order": "similarity_score.desc",
            })],
        )

        assert store.list_results("lab-1") == records

    @responses.activate
    def test_embeds_both_submissions(self, store):
        """Both compared submissions are requested through their foreign keys."""
        responses.add(responses.GET, f"{BASE}/coding_lab_plagiarism", json=[], status=200)

        store.list_results("lab-1")

        select = parse_qs(urlparse(responses.calls[0].request.url).query)["select"][0]
        assert "reviewed_by" in select
        for side in ("submission_1", "submission_2"):
            assert (
                f"{side}:coding_lab_submissions!coding_lab_plagiarism_{side}_id_fkey"
                "(id,student_id,language,source_code)"
            ) in select


class TestUpdateReview:

    @responses.activate
    def test_patch_returns_record(self, store):
        responses.add(
            responses.PATCH,
            f"{BASE}/coding_lab_plagiarism",
            json=[{"id": "r1", "flagged": False, "review_notes": "ok"}],
            status=200,
            match=[matchers.query_param_matcher({"id": "eq.r1", "select": RECORD_SELECT})],
        )

        record = store.update_review("r1", flagged=False, review_notes="ok")

        assert record == {"id": "r1", "flagged": False, "review_notes": "ok"}
        request = responses.calls[0].request
        assert json.loads(request.body) == {"flagged": False, "review_notes": "ok"}
        assert request.headers["Prefer"] == "return=representation"

    @responses.activate
    def test_patch_records_reviewer(self, store):
        responses.add(
            responses.PATCH,
            f"{BASE}/coding_lab_plagiarism",
            json=[{"id": "r1", "flagged": True, "reviewed_by": "admin"}],
            status=200,
        )

        record = store.update_review("r1", flagged=True, reviewed_by="admin")

        assert record["reviewed_by"] == "admin"
        assert json.loads(responses.calls[0].request.body) == {"flagged": True, "reviewed_by": "admin"}

    @responses.activate
    def test_unknown_record(self, store):
        responses.add(responses.PATCH, f"{BASE}/coding_lab_plagiarism", json=[], status=200)

        assert store.update_review("missing", flagged=True) is None

    @responses.activate
    def test_no_changes_reads_record(self, store):
        responses.add(
            responses.GET,
            f"{BASE}/coding_lab_plagiarism",
            json=[{"id": "r1"}],
            status=200,
            match=[matchers.query_param_matcher({"id": "eq.r1", "select": RECORD_SELECT})],
        )

        assert store.update_review("r1", reviewed_by="admin") == {"id": "r1"}
        assert responses.calls[0].request.method == "GET"
