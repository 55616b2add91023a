"""Small helpers shared across modules."""

SHORT_HASH_LENGTH = 8


def short_hash(commit_hash: str) -> str:
    """Abbreviate a commit hash for messages."""
    return commit_hash[:SHORT_HASH_LENGTH]
