"""Pull request and snapshot types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from ..config.models import PrstackConfig
from ..typing import Commit

class CheckStatus(Enum):
    """Rolled-up state of a commit's status checks."""
    UNKNOWN = "unknown"
    PASS = "pass"
    FAIL = "fail"
    PENDING = "pending"

@dataclass(frozen=True)
class PullRequestMergeStatus:
    """Merge signals for a pull request.

    ``stacked`` is derived by the ordering engine; the other three come
    from GitHub.
    """
    checks_pass: CheckStatus = CheckStatus.UNKNOWN
    review_approved: bool = False
    no_conflicts: bool = False
    stacked: bool = False

@dataclass
class PullRequest:
    """Pull request info."""
    id: str
    number: int
    title: str
    from_branch: str
    to_branch: str
    commit: Commit
    merge_status: PullRequestMergeStatus = field(default_factory=PullRequestMergeStatus)
    body: str = ""

    def ready(self, config: PrstackConfig) -> bool:
        """Check if this PR could be merged on its own."""
        status = self.merge_status
        if not status.no_conflicts:
            return False
        if config.repo.require_checks and status.checks_pass != CheckStatus.PASS:
            return False
        if config.repo.require_approval and not status.review_approved:
            return False
        return True

    def __str__(self) -> str:
        """Convert to string."""
        return f"#{self.number} : {self.title}"

@dataclass(frozen=True)
class GitHubInfo:
    """Snapshot of the remote state for one local branch."""
    user_name: str
    repository_id: str
    local_branch: str
    target_branch: str
    pull_requests: Tuple[PullRequest, ...] = ()

@dataclass(frozen=True)
class RepoAssignee:
    """A user that can be asked for review."""
    id: str
    login: str
    name: str = ""
