"""
Exceptions raised by the plagiarism check.
"""


class PlagiarismCheckError(Exception):
    """Base exception for plagiarism check failures."""
    pass


class ValidationError(PlagiarismCheckError):
    """Request parameters are missing or malformed. Raised before any data access."""
    pass


class UpstreamFetchError(PlagiarismCheckError):
    """Submissions could not be loaded. Nothing was written."""
    pass


class PersistenceError(PlagiarismCheckError):
    """Replacing the stored results failed. Previous results are kept."""
    pass


class StoreError(Exception):
    """A storage backend request failed."""
    pass
