"""Unit tests for the fetch and rebase step, including --no-rebase."""

import logging
from unittest.mock import MagicMock
from typing import Any, Dict

import pytest

from prstack.config import Config
from prstack.github.models import GitHubInfo
from prstack.spr import StackedPR
from prstack.typing import PrstackError


def make_config(no_rebase: bool) -> Config:
    return Config({
        'repo': {
            'github_remote': 'origin',
            'github_branch': 'main',
        },
        'user': {
            'log_git_commands': True,
            'no_rebase': no_rebase,
        }
    })


def scripted_git(responses: Dict[str, Any]) -> MagicMock:
    """Git mock answering from responses; a response that is an exception is raised."""
    def run(cmd: str, *args: Any, **kwargs: Any) -> str:
        response = responses.get(cmd, "")
        if isinstance(response, Exception):
            raise response
        return response

    git_mock = MagicMock()
    git_mock.must_git.side_effect = run
    git_mock.run_cmd.side_effect = run
    return git_mock


BASE_RESPONSES: Dict[str, Any] = {
    "remote": "origin",
    "rev-parse --abbrev-ref HEAD": "feature-branch",
    "fetch": "",
    "rev-parse --verify origin/main": "",
}


@pytest.fixture
def github_mock() -> MagicMock:
    github = MagicMock()
    github.get_info.return_value = GitHubInfo("alice", "R_1", "feature-branch", "main")
    return github


def rebase_calls(git_mock: MagicMock) -> list:
    return [call for call in git_mock.must_git.call_args_list if "rebase" in str(call)]


def test_rebases_onto_target_by_default(github_mock: MagicMock) -> None:
    git_mock = scripted_git(BASE_RESPONSES)

    info = StackedPR(make_config(no_rebase=False), github_mock, git_mock).fetch_and_get_github_info()

    git_mock.must_git.assert_any_call("fetch")
    git_mock.must_git.assert_any_call("rebase origin/main --autostash")
    github_mock.get_info.assert_called_once_with(git_mock)
    assert info.local_branch == "feature-branch"


def test_no_rebase_skips_rebase(github_mock: MagicMock, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG)
    git_mock = scripted_git(BASE_RESPONSES)

    StackedPR(make_config(no_rebase=True), github_mock, git_mock).fetch_and_get_github_info()

    assert not rebase_calls(git_mock), "Should not call rebase when no_rebase=True"
    assert any("Skipping rebase" in record.message for record in caplog.records)
    github_mock.get_info.assert_called_once()


def test_rebase_conflict_aborts(github_mock: MagicMock) -> None:
    responses = dict(BASE_RESPONSES)
    responses["rebase origin/main --autostash"] = Exception("CONFLICT (content)")
    responses["status"] = "You have unmerged paths.\n  (fix conflicts and run \"git rebase --continue\")"
    git_mock = scripted_git(responses)

    with pytest.raises(PrstackError, match="conflicts"):
        StackedPR(make_config(no_rebase=False), github_mock, git_mock).fetch_and_get_github_info()

    git_mock.run_cmd.assert_any_call("rebase --abort")
    github_mock.get_info.assert_not_called()


def test_missing_remote(github_mock: MagicMock) -> None:
    responses = dict(BASE_RESPONSES)
    responses["remote"] = "upstream"
    git_mock = scripted_git(responses)

    with pytest.raises(PrstackError, match="Remote 'origin' not found"):
        StackedPR(make_config(no_rebase=True), github_mock, git_mock).fetch_and_get_github_info()


def test_missing_target_branch(github_mock: MagicMock) -> None:
    responses = dict(BASE_RESPONSES)
    responses["rev-parse --verify origin/main"] = Exception("fatal: Needed a single revision")
    git_mock = scripted_git(responses)

    with pytest.raises(PrstackError, match="First push to the remote"):
        StackedPR(make_config(no_rebase=True), github_mock, git_mock).fetch_and_get_github_info()
