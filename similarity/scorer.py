"""
Similarity scoring between two submissions.

This module contains pure functions for comparing token sequences:
- Jaccard similarity over token sets
- n-gram (shingle) similarity over contiguous token windows
- a weighted combination of both, scaled to 0-100
- a matching-lines count on the original source text
"""
from dataclasses import dataclass

from .normalizer import normalize_code
from .tokenizer import tokenize

SHORT_NGRAM = 3
LONG_NGRAM = 5


@dataclass(frozen=True)
class ScoreWeights:
    """Weights of the individual metrics in the combined score."""
    jaccard: float = 0.30
    ngram3: float = 0.40  # n-grams capture ordering, so they weigh more
    ngram5: float = 0.30

    def __post_init__(self):
        values = (self.jaccard, self.ngram3, self.ngram5)
        if any(value < 0 for value in values):
            raise ValueError("Score weights must be non-negative")
        if abs(sum(values) - 1.0) > 1e-9:
            raise ValueError(f"Score weights must sum to 1, got {sum(values)}")


DEFAULT_WEIGHTS = ScoreWeights()


@dataclass(frozen=True)
class TokenBundle:
    """Precomputed token data of one submission."""
    tokens: tuple[str, ...]
    token_set: frozenset[str]
    ngram3_set: frozenset[tuple[str, ...]]
    ngram5_set: frozenset[tuple[str, ...]]
    line_set: frozenset[str] = frozenset()  # Trimmed non-blank lines of the original text


def ngram_set(tokens, n: int) -> frozenset[tuple[str, ...]]:
    """
    Build the set of contiguous n-token windows.

    Examples:
        >>> sorted(ngram_set(["a", "b", "c", "d"], 3))
        [('a', 'b', 'c'), ('b', 'c', 'd')]
        >>> ngram_set(["a", "b"], 3)
        frozenset()
    """
    tokens = tuple(tokens)
    return frozenset(tokens[i:i + n] for i in range(len(tokens) - n + 1))


def _set_jaccard(first: frozenset, second: frozenset) -> float:
    union = len(first | second)
    if union == 0:
        return 0.0
    return len(first & second) / union


def jaccard_similarity(tokens1, tokens2) -> float:
    """
    Jaccard similarity of two token sequences treated as sets.

    Returns:
        |intersection| / |union|, or 0.0 if both are empty
    """
    return _set_jaccard(frozenset(tokens1), frozenset(tokens2))


def ngram_similarity(tokens1, tokens2, n: int = SHORT_NGRAM) -> float:
    """
    Jaccard similarity of the n-gram sets of two token sequences.

    Returns:
        Similarity in [0, 1]; 0.0 if either side has fewer than n tokens
    """
    first = ngram_set(tokens1, n)
    second = ngram_set(tokens2, n)
    if not first or not second:
        return 0.0
    return _set_jaccard(first, second)


def build_token_bundle(code: str, language: str | None) -> TokenBundle:
    """Normalize and tokenize code, precomputing its token, n-gram and line sets."""
    tokens = tuple(tokenize(normalize_code(code, language)))
    return TokenBundle(
        tokens=tokens,
        token_set=frozenset(tokens),
        ngram3_set=ngram_set(tokens, SHORT_NGRAM),
        ngram5_set=ngram_set(tokens, LONG_NGRAM),
        line_set=significant_line_set(code),
    )


def _bundle_ngram_similarity(first: frozenset, second: frozenset) -> float:
    if not first or not second:
        return 0.0
    return _set_jaccard(first, second)


def combined_score(
    bundle1: TokenBundle,
    bundle2: TokenBundle,
    weights: ScoreWeights = DEFAULT_WEIGHTS
) -> float:
    """
    Calculate the weighted similarity score of two submissions.

    Args:
        bundle1: Token bundle of the first submission
        bundle2: Token bundle of the second submission
        weights: Metric weights (default 0.30 / 0.40 / 0.30)

    Returns:
        Score in [0, 100] rounded to 2 decimals. Symmetric in its arguments.
    """
    jaccard = _set_jaccard(bundle1.token_set, bundle2.token_set)
    ngram3 = _bundle_ngram_similarity(bundle1.ngram3_set, bundle2.ngram3_set)
    ngram5 = _bundle_ngram_similarity(bundle1.ngram5_set, bundle2.ngram5_set)

    score = (
        weights.jaccard * jaccard
        + weights.ngram3 * ngram3
        + weights.ngram5 * ngram5
    ) * 100
    return round(score, 2)


def significant_line_set(code: str) -> frozenset[str]:
    """Distinct non-blank lines of code with surrounding whitespace trimmed."""
    lines = (line.strip() for line in (code or "").split("\n"))
    return frozenset(line for line in lines if line)


def count_matching_lines(code1: str, code2: str) -> int:
    """
    Count distinct non-blank lines of code1 that also appear in code2.

    Works on the original (non-normalized) text with surrounding whitespace
    trimmed.

    Examples:
        >>> count_matching_lines("a = 1\\n\\nb = 2\\nb = 2", "  b = 2\\nc = 3")
        1
    """
    return len(significant_line_set(code1) & significant_line_set(code2))


def count_shared_lines(bundle1: TokenBundle, bundle2: TokenBundle) -> int:
    """count_matching_lines() from the line sets cached in two bundles."""
    return len(bundle1.line_set & bundle2.line_set)


def calculate_similarity(
    code1: str,
    code2: str,
    language: str | None,
    weights: ScoreWeights = DEFAULT_WEIGHTS
) -> tuple[float, int]:
    """
    Score two pieces of code in one call.

    Returns:
        Tuple of (combined score, matching lines)
    """
    first = build_token_bundle(code1, language)
    second = build_token_bundle(code2, language)
    return combined_score(first, second, weights), count_shared_lines(first, second)
