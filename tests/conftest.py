"""Shared fixtures for lazycurl scenario tests."""

import os

import pytest
from click.testing import CliRunner

from lazycurl import core
from lazycurl.executor import ExecutionResult
from lazycurl.models import CurlCommand, Environment


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_project(tmp_path):
    """Create a temporary project directory and cd into it."""
    original = os.getcwd()
    project = tmp_path / "project"
    project.mkdir()
    os.chdir(project)
    yield project
    os.chdir(original)


@pytest.fixture(autouse=True)
def global_lazycurl_dir(tmp_path, monkeypatch):
    """Point ~/.lazycurl at a temp location so tests never touch the real one."""
    fake_global = tmp_path / "fake_home" / ".lazycurl"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    return fake_global


@pytest.fixture
def env():
    e = Environment("Default")
    e.add_variable("host", "api.example.com")
    e.add_variable("token", "s3cr3t", is_secret=True)
    return e


@pytest.fixture
def command():
    return CurlCommand(url="https://api.example.com/users", name="Users")


def make_execution_result(
    command="curl http://x.io",
    exit_code=0,
    stdout="",
    stderr="",
    execution_time=0.042,
    error=None,
    signal=None,
):
    """Factory for ExecutionResult objects."""
    r = ExecutionResult(command)
    r.exit_code = exit_code
    r.stdout = stdout
    r.stderr = stderr
    r.execution_time = execution_time
    r.error = error
    r.signal = signal
    return r


class FakeExecutor:
    """Records commands instead of spawning curl."""

    def __init__(self, result=None):
        self.result = result
        self.commands = []

    def execute(self, command):
        self.commands.append(command)
        if self.result is not None:
            self.result.command = command
            return self.result
        return make_execution_result(command=command, stdout="HTTP/1.1 200 OK\n\nok")


@pytest.fixture
def fake_executor():
    return FakeExecutor()
