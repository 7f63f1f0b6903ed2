"""
Plagiarism check orchestrator.

This module provides the PlagiarismEngine class that runs a full check for
one lab: fetch submissions, select one per author, score all same-language
pairs, classify them and replace the stored results.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any

from .config import EngineConfig
from .errors import PersistenceError, UpstreamFetchError, ValidationError
from .models import CheckSummary, PairComparison, Submission
from .scorer import TokenBundle, build_token_bundle, combined_score, count_shared_lines
from .selector import select_best_submissions
from .stores import ResultStore, SubmissionsStore

logger = logging.getLogger(__name__)

LAB_ID_REQUIRED = "labId is required"
INVALID_THRESHOLD = "threshold must be a number between 0 and 100"


class RunState(Enum):
    """Stages of an engine run."""
    FETCHING = "fetching"
    SELECTING = "selecting"
    INSUFFICIENT_DATA = "insufficient_data"
    PAIRING = "pairing"
    SCORING = "scoring"
    REPLACING = "replacing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ScoredPair:
    """Score of the pair (first, second), indexes into the selected submissions."""
    first: int
    second: int
    score: float
    matching_lines: int


def validate_check_request(lab_id: Any, threshold: Any) -> tuple[str, float | None]:
    """
    Validate check parameters.

    Args:
        lab_id: Lab identifier, must be a non-empty string
        threshold: Report threshold in [0, 100] or None

    Returns:
        Tuple of (lab_id, threshold as float or None)

    Raises:
        ValidationError: If a parameter is missing or malformed
    """
    if not isinstance(lab_id, str) or not lab_id.strip():
        raise ValidationError(LAB_ID_REQUIRED)

    if threshold is None:
        return lab_id.strip(), None

    if isinstance(threshold, bool) or not isinstance(threshold, Real):
        raise ValidationError(INVALID_THRESHOLD)
    threshold = float(threshold)
    if not 0 <= threshold <= 100:
        raise ValidationError(INVALID_THRESHOLD)
    return lab_id.strip(), threshold


class PlagiarismEngine:
    """
    Runs plagiarism checks for labs.

    The engine holds no per-run data between calls; token bundles live only
    for the duration of run(). Two concurrent runs for the same lab are not
    coordinated here: the last replace wins.
    """

    def __init__(
        self,
        submissions: SubmissionsStore,
        results: ResultStore,
        config: EngineConfig | None = None
    ):
        """
        Initialize engine with its stores.

        Args:
            submissions: Source of lab submissions
            results: Destination of comparison results
            config: Scoring weights, thresholds and worker count
        """
        self.submissions = submissions
        self.results = results
        self.config = config or EngineConfig()
        self.state: RunState | None = None

    def _enter(self, state: RunState, lab_id: str):
        self.state = state
        logger.debug(f"Lab {lab_id}: {state.value}")

    def run(self, lab_id: Any, threshold: Any = None) -> CheckSummary:
        """
        Run a complete plagiarism check for a lab.

        Args:
            lab_id: Lab identifier
            threshold: Minimum score for a pair to be stored (default from config)

        Returns:
            CheckSummary of the run

        Raises:
            ValidationError: Invalid parameters, nothing was read or written
            UpstreamFetchError: Submissions could not be loaded, nothing was written
            PersistenceError: Results could not be stored, previous results kept
        """
        lab_id, threshold = validate_check_request(lab_id, threshold)
        if threshold is None:
            threshold = self.config.report_threshold

        logger.info(f"Starting plagiarism check for lab {lab_id} (threshold={threshold})")

        self._enter(RunState.FETCHING, lab_id)
        try:
            all_submissions = self.submissions.fetch_submissions(lab_id)
        except Exception as e:
            self._enter(RunState.FAILED, lab_id)
            logger.error(f"Failed to fetch submissions for lab {lab_id}: {e}")
            raise UpstreamFetchError(f"Failed to fetch submissions: {e}") from e

        self._enter(RunState.SELECTING, lab_id)
        selected = select_best_submissions(all_submissions)
        logger.info(f"Analyzing {len(selected)} submissions ({len(all_submissions)} total) for lab {lab_id}")

        if len(selected) < 2:
            self._enter(RunState.INSUFFICIENT_DATA, lab_id)
            return CheckSummary.insufficient_data()

        self._enter(RunState.PAIRING, lab_id)
        pairs = self._same_language_pairs(selected)

        self._enter(RunState.SCORING, lab_id)
        try:
            bundles = self._build_bundles(selected, pairs)
            scored = self._score_pairs(bundles, pairs)
        except Exception:
            self._enter(RunState.FAILED, lab_id)
            raise

        comparisons = self._classify(lab_id, selected, scored, threshold)
        flagged = sum(1 for comparison in comparisons if comparison.flagged)
        logger.info(
            f"Completed {len(pairs)} comparisons for lab {lab_id}, "
            f"found {len(comparisons)} potential matches, {flagged} flagged"
        )

        self._enter(RunState.REPLACING, lab_id)
        try:
            self.results.replace_results(lab_id, [comparison.to_row() for comparison in comparisons])
        except Exception as e:
            self._enter(RunState.FAILED, lab_id)
            logger.error(f"Failed to store plagiarism results for lab {lab_id}: {e}")
            raise PersistenceError(f"Failed to store plagiarism results: {e}") from e

        self._enter(RunState.DONE, lab_id)
        return CheckSummary(
            comparisons=len(pairs),
            potential_matches=len(comparisons),
            flagged=flagged,
            results=comparisons,
        )

    @staticmethod
    def _same_language_pairs(selected: list[Submission]) -> list[tuple[int, int]]:
        return [
            (i, j)
            for i in range(len(selected))
            for j in range(i + 1, len(selected))
            if selected[i].language == selected[j].language
        ]

    @staticmethod
    def _build_bundles(
        selected: list[Submission],
        pairs: list[tuple[int, int]]
    ) -> list[TokenBundle | None]:
        """Build one bundle per submission that takes part in a pair."""
        bundles: list[TokenBundle | None] = [None] * len(selected)
        for pair in pairs:
            for index in pair:
                if bundles[index] is None:
                    submission = selected[index]
                    bundles[index] = build_token_bundle(submission.source_code, submission.language)
        return bundles

    def _score_chunk(
        self,
        bundles: list[TokenBundle | None],
        chunk: list[tuple[int, int]]
    ) -> list[ScoredPair]:
        scored = []
        for i, j in chunk:
            scored.append(ScoredPair(
                first=i,
                second=j,
                score=combined_score(bundles[i], bundles[j], self.config.weights),
                matching_lines=count_shared_lines(bundles[i], bundles[j]),
            ))
        return scored

    def _score_pairs(
        self,
        bundles: list[TokenBundle | None],
        pairs: list[tuple[int, int]]
    ) -> list[ScoredPair]:
        workers = min(self.config.max_workers, len(pairs))
        if workers <= 1:
            return self._score_chunk(bundles, pairs)

        chunks = [pairs[offset::workers] for offset in range(workers)]
        scored: list[ScoredPair] = []
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._score_chunk, bundles, chunk) for chunk in chunks]
            for future in as_completed(futures):
                scored.extend(future.result())
        return scored

    def _classify(
        self,
        lab_id: str,
        selected: list[Submission],
        scored: list[ScoredPair],
        threshold: float
    ) -> list[PairComparison]:
        comparisons = []
        for pair in sorted(scored, key=lambda p: (p.first, p.second)):
            if pair.score < threshold:
                continue
            comparisons.append(PairComparison(
                lab_id=lab_id,
                submission_1_id=selected[pair.first].id,
                submission_2_id=selected[pair.second].id,
                similarity_score=pair.score,
                matching_lines=pair.matching_lines,
                flagged=pair.score >= self.config.flag_threshold,
            ))
        return comparisons
