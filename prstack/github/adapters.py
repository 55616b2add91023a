"""Adapter classes to wrap PyGithub objects with our protocol interfaces."""

from typing import Any, Dict, List, Optional, Tuple, Union
import logging

from github import Auth, Github
from github.Repository import Repository
from github.PullRequest import PullRequest as PyGithubPullRequest
from github.NamedUser import NamedUser
from github.AuthenticatedUser import AuthenticatedUser
from github.GithubObject import NotSet

from ..config.models import PrstackConfig
from ..typing import GitHubAuthError
from . import (
    PyGithubProtocol,
    GitHubRepoProtocol,
    GitHubPullRequestProtocol,
    GitHubUserProtocol,
    find_github_token,
    token_help_text,
)

logger = logging.getLogger(__name__)


def api_urls(github_host: str) -> Tuple[str, str]:
    """Get the (REST base url, GraphQL url) for a GitHub host."""
    if github_host.endswith("github.com"):
        return "https://api.github.com", "https://api.github.com/graphql"
    host = github_host.split("://", 1)[-1].rstrip("/")
    scheme = github_host.split("://", 1)[0] if "://" in github_host else "https"
    return f"{scheme}://{host}/api/v3", f"{scheme}://{host}/api/graphql"


class PyGithubUserAdapter(GitHubUserProtocol):
    """Adapter for PyGithub NamedUser or AuthenticatedUser objects."""

    def __init__(self, user: Union[NamedUser, AuthenticatedUser]) -> None:
        self._user = user

    @property
    def login(self) -> str:
        return self._user.login

    @property
    def name(self) -> Optional[str]:
        return self._user.name

    @property
    def node_id(self) -> str:
        return self._user.node_id


class PyGithubPullRequestAdapter(GitHubPullRequestProtocol):
    """Adapter for PyGithub PullRequest objects."""

    def __init__(self, pr: PyGithubPullRequest) -> None:
        self._pr = pr

    @property
    def number(self) -> int:
        return self._pr.number

    @property
    def node_id(self) -> str:
        return self._pr.node_id

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             state: Optional[str] = None, base: Optional[str] = None) -> None:
        """Edit the pull request."""
        # Convert None to NotSet for PyGithub
        self._pr.edit(
            title=title if title is not None else NotSet,
            body=body if body is not None else NotSet,
            state=state if state is not None else NotSet,
            base=base if base is not None else NotSet
        )

    def create_issue_comment(self, body: str) -> None:
        self._pr.create_issue_comment(body)

    def create_review_request(self, reviewers: List[str]) -> None:
        self._pr.create_review_request(reviewers=reviewers)

    def merge(self, merge_method: str = "merge") -> None:
        self._pr.merge(merge_method=merge_method)


class PyGithubRepoAdapter(GitHubRepoProtocol):
    """Adapter for PyGithub Repository objects."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        return PyGithubPullRequestAdapter(self._repo.get_pull(number))

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> GitHubPullRequestProtocol:
        pr = self._repo.create_pull(title=title, body=body, base=base, head=head, draft=draft)
        return PyGithubPullRequestAdapter(pr)

    def get_assignees(self) -> List[GitHubUserProtocol]:
        return [PyGithubUserAdapter(user) for user in self._repo.get_assignees()]


class PyGithubAdapter(PyGithubProtocol):
    """Adapter for the main PyGithub object."""

    def __init__(self, github: Github, graphql_url: str = "https://api.github.com/graphql") -> None:
        self._github = github
        self._graphql_url = graphql_url

    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        return PyGithubRepoAdapter(self._github.get_repo(full_name_or_id))

    def graphql_query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Run a GraphQL query through PyGithub's authenticated requester."""
        # PyGithub has no public GraphQL entry point for arbitrary queries
        requester = getattr(self._github, '_Github__requester')
        _headers, data = requester.requestJsonAndCheck(
            "POST", self._graphql_url, input={"query": query, "variables": variables})
        return data


def create_github(config: PrstackConfig) -> PyGithubAdapter:
    """Create a PyGithub client for the configured host.

    Raises:
        GitHubAuthError: If no token can be found.
    """
    github_host = config.repo.github_host
    token = find_github_token(github_host)
    if not token:
        raise GitHubAuthError(token_help_text(github_host))
    base_url, graphql_url = api_urls(github_host)
    logger.debug(f"Using GitHub API at {base_url}")
    return PyGithubAdapter(Github(auth=Auth.Token(token), base_url=base_url), graphql_url)
