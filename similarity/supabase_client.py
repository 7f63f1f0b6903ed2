"""
Supabase (PostgREST) storage backend.

This module provides a client for the Supabase REST API to read lab
submissions and to store plagiarism comparisons. Result replacement goes
through the replace_plagiarism_results database function, so the delete and
the insert run in one Postgres transaction.
"""
import logging
from typing import Any

import requests

from .errors import StoreError
from .models import Submission
from .stores import ResultStore, SubmissionsStore

logger = logging.getLogger(__name__)

SUBMISSIONS_TABLE = "coding_lab_submissions"
RESULTS_TABLE = "coding_lab_plagiarism"
REPLACE_FUNCTION = "replace_plagiarism_results"

# Result columns plus both compared submissions, embedded through their foreign keys
RECORD_SELECT = (
    "id,lab_id,submission_1_id,submission_2_id,similarity_score,"
    "matching_lines,flagged,detected_at,review_notes,reviewed_by,"
    "submission_1:coding_lab_submissions!coding_lab_plagiarism_submission_1_id_fkey"
    "(id,student_id,language,source_code),"
    "submission_2:coding_lab_submissions!coding_lab_plagiarism_submission_2_id_fkey"
    "(id,student_id,language,source_code)"
)


class SupabaseStore(SubmissionsStore, ResultStore):
    """Client for the Supabase REST API."""

    def __init__(self, url: str, service_key: str, timeout: float = 10):
        """
        Initialize Supabase client.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co
            service_key: Service role key
            timeout: Request timeout in seconds
        """
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/{path}"
        headers = {**self.headers, **kwargs.pop("headers", {})}
        try:
            resp = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StoreError(f"Supabase request {method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            raise StoreError(
                f"Supabase request {method} {path} failed with status {resp.status_code}: {resp.text}"
            )
        return resp

    def fetch_submissions(self, lab_id: str) -> list[Submission]:
        """
        Load all submissions of a lab.

        Args:
            lab_id: Lab identifier

        Returns:
            Submissions ordered by score descending, missing scores last

        Raises:
            StoreError: If the request fails
        """
        resp = self._request(
            "GET",
            SUBMISSIONS_TABLE,
            params={
                "select": "id,student_id,source_code,language,score",
                "lab_id": f"eq.{lab_id}",
                "order": "score.desc.nullslast",
            },
        )
        rows = resp.json()
        logger.debug(f"Fetched {len(rows)} submissions for lab {lab_id}")
        return [Submission.from_row(row) for row in rows]

    def replace_results(self, lab_id: str, rows: list[dict[str, Any]]) -> int:
        """
        Replace stored comparisons of a lab in a single RPC call.

        Raises:
            StoreError: If the request fails; the previous rows stay in place
        """
        resp = self._request(
            "POST",
            f"rpc/{REPLACE_FUNCTION}",
            json={"p_lab_id": lab_id, "p_rows": rows},
        )
        inserted = resp.json()
        return inserted if isinstance(inserted, int) else len(rows)

    def list_results(self, lab_id: str) -> list[dict[str, Any]]:
        resp = self._request(
            "GET",
            RESULTS_TABLE,
            params={
                "select": RECORD_SELECT,
                "lab_id": f"eq.{lab_id}",
                "order": "similarity_score.desc",
            },
        )
        return resp.json()

    def update_review(
        self,
        record_id: str,
        flagged: bool | None = None,
        review_notes: str | None = None,
        reviewed_by: str | None = None
    ) -> dict[str, Any] | None:
        changes: dict[str, Any] = {}
        if flagged is not None:
            changes["flagged"] = flagged
        if review_notes is not None:
            changes["review_notes"] = review_notes
        if changes and reviewed_by is not None:
            changes["reviewed_by"] = reviewed_by

        params = {"id": f"eq.{record_id}", "select": RECORD_SELECT}
        if not changes:
            resp = self._request("GET", RESULTS_TABLE, params=params)
        else:
            resp = self._request(
                "PATCH",
                RESULTS_TABLE,
                params=params,
                json=changes,
                headers={"Prefer": "return=representation"},
            )
        records = resp.json()
        return records[0] if records else None
