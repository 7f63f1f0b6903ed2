"""
Data model of the plagiarism check.
"""
from dataclasses import dataclass, field
from typing import Any

INSUFFICIENT_DATA_MESSAGE = "Not enough submissions to compare"


@dataclass(frozen=True)
class Submission:
    """A coding lab submission as read from the submissions store."""
    id: str
    author_id: str
    source_code: str
    language: str
    score: float | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Submission":
        """Build a submission from a store row (author column is student_id)."""
        score = row.get("score")
        return cls(
            id=str(row["id"]),
            author_id=str(row["student_id"]),
            source_code=row.get("source_code") or "",
            language=row.get("language") or "",
            score=float(score) if score is not None else None,
        )


@dataclass(frozen=True)
class PairComparison:
    """Retained comparison of two submissions of the same lab."""
    lab_id: str
    submission_1_id: str
    submission_2_id: str
    similarity_score: float  # 0-100, 2 decimals
    matching_lines: int
    flagged: bool

    def to_row(self) -> dict[str, Any]:
        """Record shape written to the results store."""
        return {
            "lab_id": self.lab_id,
            "submission_1_id": self.submission_1_id,
            "submission_2_id": self.submission_2_id,
            "similarity_score": self.similarity_score,
            "matching_lines": self.matching_lines,
            "flagged": self.flagged,
        }

    def to_result(self) -> dict[str, Any]:
        """Entry of the "results" list in the API response."""
        return {
            "similarity": self.similarity_score,
            "matchingLines": self.matching_lines,
            "flagged": self.flagged,
        }


@dataclass
class CheckSummary:
    """Outcome of one engine run."""
    comparisons: int
    potential_matches: int
    flagged: int
    results: list[PairComparison] = field(default_factory=list)
    message: str | None = None  # Set when there was nothing to compare

    @classmethod
    def insufficient_data(cls) -> "CheckSummary":
        return cls(
            comparisons=0,
            potential_matches=0,
            flagged=0,
            message=INSUFFICIENT_DATA_MESSAGE,
        )

    def to_response(self) -> dict[str, Any]:
        if self.message is not None:
            return {
                "success": True,
                "message": self.message,
                "comparisons": self.comparisons,
                "flagged": self.flagged,
            }
        return {
            "success": True,
            "comparisons": self.comparisons,
            "potentialMatches": self.potential_matches,
            "flagged": self.flagged,
            "results": [comparison.to_result() for comparison in self.results],
        }
