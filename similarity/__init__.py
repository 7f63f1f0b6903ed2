"""
Plagiarism detection for coding lab submissions.

This package contains the pieces of a plagiarism check:
- normalizer: Strip comments and literals, collapse whitespace
- tokenizer: Split normalized code into tokens
- scorer: Jaccard / n-gram similarity and matching lines
- selector: Pick one submission per author
- engine: Orchestrator for a full check of a lab
- sqlite_store / supabase_client: Storage backends
"""

from .normalizer import (
    normalize_code,
    strip_comments_and_strings,
    LanguageFamily,
    CommentSyntax,
    LANGUAGE_FAMILIES,
)

from .tokenizer import (
    tokenize,
    STRUCTURAL_CHARS,
)

from .scorer import (
    jaccard_similarity,
    ngram_set,
    ngram_similarity,
    build_token_bundle,
    combined_score,
    count_matching_lines,
    count_shared_lines,
    significant_line_set,
    calculate_similarity,
    ScoreWeights,
    TokenBundle,
    DEFAULT_WEIGHTS,
)

from .selector import select_best_submissions

from .models import (
    Submission,
    PairComparison,
    CheckSummary,
    INSUFFICIENT_DATA_MESSAGE,
)

from .errors import (
    PlagiarismCheckError,
    ValidationError,
    UpstreamFetchError,
    PersistenceError,
    StoreError,
)

from .config import (
    EngineConfig,
    load_engine_config,
    DEFAULT_FLAG_THRESHOLD,
    DEFAULT_REPORT_THRESHOLD,
)

from .stores import SubmissionsStore, ResultStore
from .sqlite_store import SQLiteStore
from .supabase_client import SupabaseStore

from .engine import (
    PlagiarismEngine,
    RunState,
    validate_check_request,
)

__all__ = [
    # normalizer
    "normalize_code",
    "strip_comments_and_strings",
    "LanguageFamily",
    "CommentSyntax",
    "LANGUAGE_FAMILIES",
    # tokenizer
    "tokenize",
    "STRUCTURAL_CHARS",
    # scorer
    "jaccard_similarity",
    "ngram_set",
    "ngram_similarity",
    "build_token_bundle",
    "combined_score",
    "count_matching_lines",
    "count_shared_lines",
    "significant_line_set",
    "calculate_similarity",
    "ScoreWeights",
    "TokenBundle",
    "DEFAULT_WEIGHTS",
    # selector
    "select_best_submissions",
    # models
    "Submission",
    "PairComparison",
    "CheckSummary",
    "INSUFFICIENT_DATA_MESSAGE",
    # errors
    "PlagiarismCheckError",
    "ValidationError",
    "UpstreamFetchError",
    "PersistenceError",
    "StoreError",
    # config
    "EngineConfig",
    "load_engine_config",
    "DEFAULT_FLAG_THRESHOLD",
    "DEFAULT_REPORT_THRESHOLD",
    # stores
    "SubmissionsStore",
    "ResultStore",
    "SQLiteStore",
    "SupabaseStore",
    # engine
    "PlagiarismEngine",
    "RunState",
    "validate_check_request",
]
