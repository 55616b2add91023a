"""Configuration for pytest."""

import io

import pytest

from prstack.config import Config
from prstack.github import GitHubClient
from prstack.spr import StackedPR
from prstack.tests.fake_pygithub import FakeGithub
from prstack.tests.utils import FakeGit, make_config

@pytest.fixture
def config() -> Config:
    return make_config()

@pytest.fixture
def fake_github() -> FakeGithub:
    return FakeGithub(viewer="alice")

@pytest.fixture
def fake_git(fake_github: FakeGithub) -> FakeGit:
    return FakeGit(fake_github)

@pytest.fixture
def github_client(config: Config, fake_github: FakeGithub) -> GitHubClient:
    return GitHubClient(config, fake_github)

@pytest.fixture
def stackedpr(config: Config, github_client: GitHubClient, fake_git: FakeGit) -> StackedPR:
    spr = StackedPR(config, github_client, fake_git)
    spr.output = io.StringIO()
    return spr
