"""
Storage interfaces used by the comparison engine.
"""
from abc import ABC, abstractmethod
from typing import Any

from .models import Submission


class SubmissionsStore(ABC):
    """Source of lab submissions."""

    @abstractmethod
    def fetch_submissions(self, lab_id: str) -> list[Submission]:
        """
        Load all submissions of a lab.

        :param lab_id: Lab identifier
        :return: Submissions ordered by score descending, missing scores last
        """
        pass


class ResultStore(ABC):
    """Sink for comparison results."""

    @abstractmethod
    def replace_results(self, lab_id: str, rows: list[dict[str, Any]]) -> int:
        """
        Replace every stored comparison of a lab with the given rows.

        Must be atomic: readers see either the old rows or the new rows,
        never a mix and never an empty gap.

        :param lab_id: Lab identifier
        :param rows: Records as produced by PairComparison.to_row()
        :return: Number of inserted rows
        """
        pass

    @abstractmethod
    def list_results(self, lab_id: str) -> list[dict[str, Any]]:
        """
        Stored comparisons of a lab, highest similarity first.

        Each record carries "submission_1" and "submission_2" with the id,
        student_id, language and source_code of the compared submissions
        (None when the submission no longer exists).
        """
        pass

    @abstractmethod
    def update_review(
        self,
        record_id: str,
        flagged: bool | None = None,
        review_notes: str | None = None,
        reviewed_by: str | None = None
    ) -> dict[str, Any] | None:
        """
        Apply a reviewer decision to a stored comparison.

        :param record_id: Stored record id
        :param flagged: New flag value, None keeps the current one
        :param review_notes: New notes, None keeps the current ones
        :param reviewed_by: Reviewer recorded with a flag or notes change
        :return: Updated record in the list_results() shape, or None if it does not exist
        """
        pass
