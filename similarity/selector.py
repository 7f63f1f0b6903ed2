"""
Selection of one representative submission per author.
"""
from .models import Submission


def _score_sort_key(submission: Submission) -> tuple[bool, float]:
    # Missing scores sort after every real score
    if submission.score is None:
        return (True, 0.0)
    return (False, -submission.score)


def select_best_submissions(submissions: list[Submission]) -> list[Submission]:
    """
    Pick the highest-scoring submission of every author.

    Submissions are stable-sorted by score descending (missing scores last),
    then the first submission seen for each author wins. Ties are therefore
    broken by input order.

    Args:
        submissions: All submissions of a lab

    Returns:
        One submission per author, in score-descending order

    Examples:
        >>> subs = [Submission("a", "x", "", "c", 40), Submission("b", "x", "", "c", 90)]
        >>> [s.id for s in select_best_submissions(subs)]
        ['b']
    """
    selected: dict[str, Submission] = {}
    for submission in sorted(submissions, key=_score_sort_key):
        if submission.author_id not in selected:
            selected[submission.author_id] = submission
    return list(selected.values())
