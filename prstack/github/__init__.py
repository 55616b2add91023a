"""GitHub interfaces and implementation."""

import os
import re
import dataclasses
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence, runtime_checkable

import yaml
from github import GithubException

from ..config.models import MergeMethod, PrstackConfig
from ..git import get_local_branch_name, get_remote_branch_name
from ..typing import (
    Commit, GitInterface, GitHubAuthError, PrstackError, PullRequestMutationError,
)
from .branch import branch_name_from_commit, decode_branch_name
from .models import (
    CheckStatus, GitHubInfo, PullRequest, PullRequestMergeStatus, RepoAssignee,
)
from .stack import format_body, sort_pull_requests
from .types import PULL_REQUESTS_QUERY, GraphQLData, PRNode, parse_graphql_response

__all__ = [
    'CheckStatus', 'GitHubClient', 'GitHubInfo', 'PullRequest',
    'PullRequestMergeStatus', 'RepoAssignee', 'find_github_token',
]

# Get module logger
logger = logging.getLogger(__name__)

COMMIT_ID_TRAILER_REGEX = re.compile(r'^[ \t]*commit-id:[a-f0-9]{8}[ \t]*$\n?', re.MULTILINE)

TOKEN_HELP_TEXT = """
No GitHub OAuth token found! You can either create one
at https://{host}/settings/tokens and set the GITHUB_TOKEN environment variable,
or use the official "gh" CLI (https://cli.github.com) config to log in:

	$ gh auth login

Alternatively, configure a token manually in ~/.config/hub:

	github.com:
	- user: <your username>
	  oauth_token: <your token>
	  protocol: https

This configuration file is shared with GitHub's "hub" CLI (https://hub.github.com/),
so if you already use that, prstack will automatically pick up your token.
"""

UNAUTHORIZED_HELP_TEXT = """error : 401 Unauthorized
 make sure GITHUB_TOKEN env variable is set with a valid token
 to create a valid token goto: https://{host}/settings/tokens
"""

# Define protocols for GitHub objects
@runtime_checkable
class GitHubUserProtocol(Protocol):
    """Protocol for GitHub user objects (real or fake)."""
    @property
    def login(self) -> str:
        """Get the user's login name."""
        ...

    @property
    def name(self) -> Optional[str]:
        """Get the user's display name."""
        ...

    @property
    def node_id(self) -> str:
        """Get the user's GraphQL node id."""
        ...

@runtime_checkable
class GitHubPullRequestProtocol(Protocol):
    """Protocol for GitHub pull request objects (real or fake)."""
    @property
    def number(self) -> int:
        """Get the PR number."""
        ...

    @property
    def node_id(self) -> str:
        """Get the PR's GraphQL node id."""
        ...

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             state: Optional[str] = None, base: Optional[str] = None) -> None:
        """Edit the pull request."""
        ...

    def create_issue_comment(self, body: str) -> None:
        """Add a comment to the pull request."""
        ...

    def create_review_request(self, reviewers: List[str]) -> None:
        """Request reviews from users."""
        ...

    def merge(self, merge_method: str = "merge") -> None:
        """Merge the pull request."""
        ...

@runtime_checkable
class GitHubRepoProtocol(Protocol):
    """Protocol for GitHub repository objects (real or fake)."""
    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        """Get a pull request by number."""
        ...

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> GitHubPullRequestProtocol:
        """Create a new pull request."""
        ...

    def get_assignees(self) -> List[GitHubUserProtocol]:
        """Get assignable users for repository."""
        ...

@runtime_checkable
class PyGithubProtocol(Protocol):
    """Protocol for PyGithub implementations (real or fake)."""
    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        """Get a repository by full name."""
        ...

    def graphql_query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Run a GraphQL query and return the decoded response body."""
        ...

def find_github_token(github_host: str = "github.com") -> Optional[str]:
    """Find GitHub token from env var, gh CLI config or hub CLI config."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    # ~/.config/gh/hosts.yml, keyed by host
    gh_config_path = Path.home() / ".config" / "gh" / "hosts.yml"
    try:
        with open(gh_config_path, "r") as f:
            gh_config = yaml.safe_load(f) or {}
        host_config = gh_config.get(github_host)
        if isinstance(host_config, dict) and isinstance(host_config.get("oauth_token"), str):
            return host_config["oauth_token"]
    except FileNotFoundError:
        logger.debug(f"No gh cli config at {gh_config_path}")
    except (OSError, yaml.YAMLError, AttributeError) as e:
        logger.warning(f"failed to read gh cli config file: {e}")

    # ~/.config/hub, a list of users per host
    hub_config_path = Path.home() / ".config" / "hub"
    try:
        with open(hub_config_path, "r") as f:
            hub_config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.debug(f"No hub config at {hub_config_path}")
        return None
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"failed to read hub config file: {e}")
        return None

    entries = hub_config.get("github.com") if isinstance(hub_config, dict) else None
    if not entries:
        logger.warning("no token found in hub config file")
        return None
    if len(entries) > 1:
        logger.warning(f"multiple tokens found in hub config file, using first one: {entries[0].get('user')}")
    token = entries[0].get("oauth_token")
    return token if isinstance(token, str) and token else None

def token_help_text(github_host: str) -> str:
    return TOKEN_HELP_TEXT.format(host=github_host)

def _check_status(node: PRNode) -> CheckStatus:
    """Map the last commit's status rollup onto CheckStatus.

    A missing rollup or an unrecognized state counts as failing.
    """
    rollup = node.commits.nodes[0].commit.statusCheckRollup
    if rollup is None:
        return CheckStatus.FAIL
    if rollup.state == "SUCCESS":
        return CheckStatus.PASS
    if rollup.state == "PENDING":
        return CheckStatus.PENDING
    if rollup.state not in ("FAILURE", "ERROR", "EXPECTED"):
        logger.warning(f"PR #{node.number}: unknown check rollup state {rollup.state!r}, treating as failed")
    return CheckStatus.FAIL

def pull_request_from_node(node: PRNode) -> PullRequest:
    """Build a PullRequest from a GraphQL node whose head branch decodes."""
    identity = decode_branch_name(node.headRefName)
    if identity is None:
        raise ValueError(f"PR #{node.number}: {node.headRefName!r} is not a stack branch")
    last_commit = node.commits.nodes[0].commit
    commit = Commit.from_strings(
        identity.commit_id,
        last_commit.oid,
        last_commit.messageHeadline,
        COMMIT_ID_TRAILER_REGEX.sub("", last_commit.messageBody).strip(),
    )
    return PullRequest(
        id=node.id,
        number=node.number,
        title=node.title,
        from_branch=node.headRefName,
        to_branch=node.baseRefName,
        commit=commit,
        merge_status=PullRequestMergeStatus(
            checks_pass=_check_status(node),
            review_approved=node.reviewDecision == "APPROVED",
            no_conflicts=node.mergeable == "MERGEABLE",
        ),
        body=node.body,
    )

class GitHubClient:
    """GitHub client implementation."""
    def __init__(self, config: PrstackConfig, github_client: PyGithubProtocol):
        """Initialize with config and GitHub client implementation (real or fake)."""
        self.config = config
        self.client = github_client
        self._repo: Optional[GitHubRepoProtocol] = None

    @property
    def repo(self) -> GitHubRepoProtocol:
        """Get GitHub repository."""
        if self._repo is None:
            owner = self.config.repo.github_repo_owner
            name = self.config.repo.github_repo_name
            if not owner or not name:
                raise PrstackError("GitHub repository owner/name not configured and not derivable from git remote")
            self._repo = self.client.get_repo(f"{owner}/{name}")
        return self._repo

    def _log_call(self, message: str) -> None:
        if self.config.user.log_github_calls:
            logger.info(f"> github {message}")
        else:
            logger.debug(f"> github {message}")

    def _auth_error(self, e: GithubException) -> GitHubAuthError:
        return GitHubAuthError(UNAUTHORIZED_HELP_TEXT.format(host=self.config.repo.github_host) + str(e))

    @contextmanager
    def _mutation(self, action: str, pr_id: str, number: int, title: str) -> Iterator[None]:
        """Turn failures of a remote mutation into prstack errors."""
        try:
            yield
        except PrstackError:
            raise
        except GithubException as e:
            if e.status == 401:
                raise self._auth_error(e) from e
            logger.error(f"pull request {action} failed: id={pr_id} number={number} title={title!r}: {e}")
            raise PullRequestMutationError(action, pr_id, number, title, e) from e
        except Exception as e:
            logger.error(f"pull request {action} failed: id={pr_id} number={number} title={title!r}: {e}")
            raise PullRequestMutationError(action, pr_id, number, title, e) from e

    def _fetch_pull_requests(self) -> GraphQLData:
        owner = self.config.repo.github_repo_owner
        name = self.config.repo.github_repo_name
        if not owner or not name:
            raise PrstackError("GitHub repository owner/name not configured and not derivable from git remote")
        self._log_call("fetch pull requests")
        try:
            response = self.client.graphql_query(
                PULL_REQUESTS_QUERY, {"repoOwner": owner, "repoName": name})
        except GithubException as e:
            if e.status == 401:
                raise self._auth_error(e) from e
            raise
        return parse_graphql_response(response)

    def get_info(self, git_cmd: GitInterface) -> GitHubInfo:
        """Take a snapshot of the pull requests stacked on the current local branch."""
        local_branch = get_local_branch_name(git_cmd)
        target_branch = get_remote_branch_name(git_cmd, self.config)
        data = self._fetch_pull_requests()

        requests: List[PullRequest] = []
        for node in data.viewer.pullRequests.nodes:
            if node.repository.id != data.repository.id:
                continue
            identity = decode_branch_name(node.headRefName)
            if identity is None:
                logger.debug(f"Skipping PR #{node.number}: {node.headRefName} is not a stack branch")
                continue
            if identity.local_branch != local_branch:
                logger.debug(f"Skipping PR #{node.number}: belongs to local branch {identity.local_branch}")
                continue
            if not node.commits.nodes:
                logger.warning(f"Skipping PR #{node.number}: no commits returned for {node.headRefName}")
                continue
            requests.append(pull_request_from_node(node))

        ordered = sort_pull_requests(requests, self.config, target_branch)
        info = GitHubInfo(
            user_name=data.viewer.login,
            repository_id=data.repository.id,
            local_branch=local_branch,
            target_branch=target_branch,
            pull_requests=tuple(ordered),
        )
        logger.debug(f"get_info: {info}")
        return info

    def get_assignable_users(self) -> List[RepoAssignee]:
        """Get users that can be requested for review."""
        self._log_call("get assignable users")
        try:
            users = self.repo.get_assignees()
        except GithubException as e:
            if e.status == 401:
                raise self._auth_error(e) from e
            raise
        return [RepoAssignee(id=u.node_id, login=u.login, name=u.name or "") for u in users]

    def _base_branch(self, info: GitHubInfo, prev_commit: Optional[Commit]) -> str:
        if prev_commit is None:
            return info.target_branch
        return branch_name_from_commit(info, prev_commit)

    def create_pull_request(self, info: GitHubInfo, stack: Sequence[PullRequest],
                            commit: Commit, prev_commit: Optional[Commit]) -> PullRequest:
        """Create the pull request for commit, based on prev_commit's branch."""
        base = self._base_branch(info, prev_commit)
        head = branch_name_from_commit(info, commit)
        body = format_body(commit, stack, self.config.repo.show_pr_titles_in_stack)
        logger.debug(f"CreatePullRequest: commit={commit.commit_id} from={head} to={base}")

        with self._mutation("create", "", 0, commit.subject):
            gh_pr = self.repo.create_pull(
                title=commit.subject, body=body, base=base, head=head,
                draft=self.config.user.create_draft_prs)

        pr = PullRequest(
            id=gh_pr.node_id,
            number=gh_pr.number,
            title=commit.subject,
            from_branch=head,
            to_branch=base,
            commit=commit,
            merge_status=PullRequestMergeStatus(),
            body=body,
        )
        self._log_call(f"create #{pr.number} : {pr.title}")
        return pr

    def update_pull_request(self, info: GitHubInfo, stack: Sequence[PullRequest], pr: PullRequest,
                            commit: Commit, prev_commit: Optional[Commit]) -> PullRequest:
        """Bring base, title and body of pr in line with commit and the stack.

        Only drifted fields are sent; nothing is sent when nothing drifted.
        Returns the pull request as it stands afterwards.
        """
        base = self._base_branch(info, prev_commit)
        title = commit.subject
        body = format_body(commit, stack, self.config.repo.show_pr_titles_in_stack)

        changes: Dict[str, str] = {}
        if pr.to_branch != base:
            changes["base"] = base
        if pr.title != title:
            changes["title"] = title
        if pr.body != body:
            changes["body"] = body

        updated = dataclasses.replace(pr, to_branch=base, title=title, body=body, commit=commit)
        if not changes:
            logger.debug(f"PR #{pr.number} is up to date")
            return updated

        self._log_call(f"update #{pr.number} : {title} ({', '.join(sorted(changes))})")
        with self._mutation("update", pr.id, pr.number, pr.title):
            self.repo.get_pull(pr.number).edit(**changes)
        return updated

    def add_reviewers(self, pr: PullRequest, logins: List[str]) -> None:
        """Request review on pr from the given users."""
        self._log_call(f"add reviewers #{pr.number} : {pr.title} - {logins}")
        with self._mutation("add reviewers", pr.id, pr.number, pr.title):
            self.repo.get_pull(pr.number).create_review_request(reviewers=logins)

    def comment_pull_request(self, pr: PullRequest, comment: str) -> None:
        """Comment on pull request."""
        self._log_call(f"add comment #{pr.number} : {pr.title}")
        with self._mutation("comment", pr.id, pr.number, pr.title):
            self.repo.get_pull(pr.number).create_issue_comment(comment)

    def merge_pull_request(self, pr: PullRequest, merge_method: MergeMethod) -> None:
        """Merge pull request."""
        self._log_call(f"merge #{pr.number} : {pr.title} ({merge_method})")
        with self._mutation("merge", pr.id, pr.number, pr.title):
            self.repo.get_pull(pr.number).merge(merge_method=merge_method)

    def close_pull_request(self, pr: PullRequest) -> None:
        """Close pull request."""
        self._log_call(f"close #{pr.number} : {pr.title}")
        with self._mutation("close", pr.id, pr.number, pr.title):
            self.repo.get_pull(pr.number).edit(state="closed")
