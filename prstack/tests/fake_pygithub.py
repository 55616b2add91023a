"""Fake PyGithub implementation for testing.

Keeps pull requests and pushed branches in memory and answers the single
GraphQL query prstack issues. Every mutation is recorded in ``calls`` so
tests can assert exactly which remote writes happened.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from github import GithubException

logger = logging.getLogger(__name__)

@dataclass
class FakeNamedUser:
    """Fake implementation of the NamedUser class from PyGithub."""
    login: str
    name: str = ""
    node_id: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.login.capitalize()
        if not self.node_id:
            self.node_id = f"U_{self.login}"

@dataclass
class FakeCommit:
    """Head commit of a pushed branch."""
    oid: str
    headline: str
    body: str = ""
    check_state: Optional[str] = "SUCCESS"

@dataclass
class FakePullRequestData:
    """Database record for a pull request."""
    number: int
    node_id: str
    repository: str
    author: str
    title: str
    body: str
    base_ref: str
    head_ref: str
    draft: bool = False
    state: str = "open"
    merged: bool = False
    merge_method: str = ""
    review_decision: Optional[str] = None
    mergeable: str = "MERGEABLE"
    reviewers: List[str] = field(default_factory=list)
    comments: List[str] = field(default_factory=list)

class FakePullRequest:
    """API response object for a pull request."""

    def __init__(self, github: FakeGithub, data: FakePullRequestData) -> None:
        self._github = github
        self.data = data

    @property
    def number(self) -> int:
        return self.data.number

    @property
    def node_id(self) -> str:
        return self.data.node_id

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             state: Optional[str] = None, base: Optional[str] = None) -> None:
        self._github.maybe_fail("edit")
        changes: Dict[str, str] = {}
        if base is not None:
            self._github.check_branch(self.data.repository, base)
            self.data.base_ref = base
            changes["base"] = base
        if title is not None:
            self.data.title = title
            changes["title"] = title
        if body is not None:
            self.data.body = body
            changes["body"] = body
        if state is not None:
            self.data.state = state
            changes["state"] = state
        self._github.calls.append(("edit", self.data.number, changes))

    def create_issue_comment(self, body: str) -> None:
        self._github.maybe_fail("comment")
        self.data.comments.append(body)
        self._github.calls.append(("comment", self.data.number, body))

    def create_review_request(self, reviewers: List[str]) -> None:
        self._github.maybe_fail("review")
        self.data.reviewers.extend(reviewers)
        self._github.calls.append(("review", self.data.number, list(reviewers)))

    def merge(self, merge_method: str = "merge") -> None:
        self._github.maybe_fail("merge")
        self.data.merged = True
        self.data.state = "closed"
        self.data.merge_method = merge_method
        self._github.calls.append(("merge", self.data.number, merge_method))

class FakeRepository:
    """Fake implementation of the Repository class from PyGithub."""

    def __init__(self, github: FakeGithub, full_name: str, node_id: str) -> None:
        self._github = github
        self.full_name = full_name
        self.node_id = node_id

    def get_pull(self, number: int) -> FakePullRequest:
        self._github.maybe_fail("get_pull")
        data = self._github.pulls.get((self.full_name, number))
        if data is None:
            raise GithubException(404, {"message": "Not Found"})
        return FakePullRequest(self._github, data)

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> FakePullRequest:
        self._github.maybe_fail("create")
        self._github.check_branch(self.full_name, base)
        self._github.check_branch(self.full_name, head)
        self._github.next_number += 1
        number = self._github.next_number
        data = FakePullRequestData(
            number=number,
            node_id=f"PR_{number}",
            repository=self.full_name,
            author=self._github.viewer.login,
            title=title,
            body=body,
            base_ref=base,
            head_ref=head,
            draft=draft,
        )
        self._github.pulls[(self.full_name, number)] = data
        self._github.calls.append(("create", number, {"base": base, "head": head, "title": title, "draft": draft}))
        return FakePullRequest(self._github, data)

    def get_assignees(self) -> List[FakeNamedUser]:
        return list(self._github.users.values())

class FakeGithub:
    """In-memory stand-in for the PyGithub client."""

    def __init__(self, viewer: str = "alice", default_branches: Tuple[str, ...] = ("main",)) -> None:
        self.viewer = FakeNamedUser(viewer)
        self.users: Dict[str, FakeNamedUser] = {viewer: self.viewer}
        self.repositories: Dict[str, FakeRepository] = {}
        self.branches: Dict[Tuple[str, str], FakeCommit] = {}
        self.pulls: Dict[Tuple[str, int], FakePullRequestData] = {}
        self.calls: List[Tuple[Any, ...]] = []
        self.next_number = 0
        self.graphql_queries = 0
        # action name -> exception raised by the next call of that action
        self.failures: Dict[str, Exception] = {}
        self._default_branches = default_branches

    def add_user(self, login: str) -> FakeNamedUser:
        user = FakeNamedUser(login)
        self.users[login] = user
        return user

    def get_repo(self, full_name_or_id: str) -> FakeRepository:
        repo = self.repositories.get(full_name_or_id)
        if repo is None:
            repo = FakeRepository(self, full_name_or_id, f"R_{len(self.repositories) + 1}")
            self.repositories[full_name_or_id] = repo
            for branch in self._default_branches:
                self.branches[(full_name_or_id, branch)] = FakeCommit("0" * 40, "Initial commit")
        return repo

    def maybe_fail(self, action: str) -> None:
        error = self.failures.pop(action, None)
        if error is not None:
            raise error

    def check_branch(self, repository: str, branch: str) -> None:
        if (repository, branch) not in self.branches:
            raise GithubException(422, {"message": f"Validation Failed: no branch {branch}"})

    def push_branch(self, repository: str, branch: str, commit: FakeCommit) -> None:
        self.get_repo(repository)
        self.branches[(repository, branch)] = commit

    def open_pulls(self, repository: str) -> List[FakePullRequestData]:
        return sorted((p for (repo, _), p in self.pulls.items() if repo == repository and p.state == "open"),
                      key=lambda p: p.number)

    def _pull_node(self, data: FakePullRequestData) -> Dict[str, Any]:
        head = self.branches.get((data.repository, data.head_ref))
        commit_nodes: List[Dict[str, Any]] = []
        if head is not None:
            commit_nodes.append({"commit": {
                "oid": head.oid,
                "messageHeadline": head.headline,
                "messageBody": head.body,
                "statusCheckRollup": {"state": head.check_state} if head.check_state else None,
            }})
        return {
            "id": data.node_id,
            "number": data.number,
            "title": data.title,
            "body": data.body,
            "baseRefName": data.base_ref,
            "headRefName": data.head_ref,
            "mergeable": data.mergeable,
            "reviewDecision": data.review_decision,
            "repository": {"id": self.get_repo(data.repository).node_id},
            "commits": {"nodes": commit_nodes},
        }

    def graphql_query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        self.graphql_queries += 1
        self.maybe_fail("graphql")
        repo = self.get_repo(f"{variables['repoOwner']}/{variables['repoName']}")
        nodes = [
            self._pull_node(data)
            for data in sorted(self.pulls.values(), key=lambda p: -p.number)
            if data.state == "open" and data.author == self.viewer.login
        ]
        return {
            "data": {
                "viewer": {"login": self.viewer.login, "pullRequests": {"nodes": nodes}},
                "repository": {"id": repo.node_id},
            }
        }
