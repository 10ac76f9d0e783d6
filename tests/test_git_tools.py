import subprocess

import pytest

from blameme import git_tools
from blameme.git_tools import (
    GitError,
    blame_args,
    blame_file,
    blame_lines,
    blame_records,
    pick_lines,
)
from blameme.porcelain import NAME_MODE, MalformedAuthorField, parse_blame

from blame_samples import ABBREVIATED, FIRST_HASH, MULTIPLE_LINES, SECOND_HASH


class FakeRun:
    """Stand-in for subprocess.run recording its calls."""

    def __init__(self, stdout="", stderr="", returncode=0):
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(
            cmd, self.returncode, self.stdout.encode("utf-8"), self.stderr.encode("utf-8")
        )


@pytest.fixture
def fake_run(monkeypatch):
    run = FakeRun(stdout=MULTIPLE_LINES + "\n")
    monkeypatch.setattr(git_tools.subprocess, "run", run)
    return run


def test_blame_args():
    assert blame_args("/repo/main.tf") == ["git", "blame", "--line-porcelain", "--", "main.tf"]
    assert blame_args("/repo/main.tf", "HEAD~1", abbreviated=True) == [
        "git",
        "blame",
        "HEAD~1",
        "--porcelain",
        "--",
        "main.tf",
    ]


def test_blame_file_runs_in_file_directory(fake_run, tmp_path):
    path = tmp_path / "main.tf"
    assert blame_file(str(path), "abc123") == MULTIPLE_LINES + "\n"
    ((cmd, kwargs),) = fake_run.calls
    assert cmd == ["git", "blame", "abc123", "--line-porcelain", "--", "main.tf"]
    assert kwargs["cwd"] == str(tmp_path)
    assert kwargs["capture_output"]


def test_blame_file_failure(monkeypatch, tmp_path):
    run = FakeRun(stderr="fatal: no such path 'main.tf' in HEAD", returncode=128)
    monkeypatch.setattr(git_tools.subprocess, "run", run)
    with pytest.raises(GitError, match="no such path"):
        blame_file(str(tmp_path / "main.tf"))


def test_blame_file_without_git(monkeypatch, tmp_path):
    def missing_git(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", "git")

    monkeypatch.setattr(git_tools.subprocess, "run", missing_git)
    with pytest.raises(GitError, match="could not run git blame"):
        blame_file(str(tmp_path / "main.tf"))


def test_blame_records(fake_run, tmp_path):
    records = blame_records(str(tmp_path / "main.tf"), mode=NAME_MODE)
    assert [record.author for record in records] == ["hezijie", "Yuping Wei"]


def test_blame_records_abbreviated(monkeypatch, tmp_path):
    run = FakeRun(stdout=ABBREVIATED)
    monkeypatch.setattr(git_tools.subprocess, "run", run)
    records = blame_records(str(tmp_path / "main.tf"), abbreviated=True)
    assert len(records) == 4
    assert "--porcelain" in run.calls[0][0]


def test_blame_records_propagates_parsing_errors(monkeypatch, tmp_path):
    monkeypatch.setattr(git_tools.subprocess, "run", FakeRun(stdout=ABBREVIATED))
    with pytest.raises(MalformedAuthorField):
        blame_records(str(tmp_path / "main.tf"))


def test_blame_lines(fake_run, tmp_path):
    lines = blame_lines(str(tmp_path / "main.tf"), [2, 1, 7])
    assert sorted(lines) == [1, 2]
    assert lines[1].hash == FIRST_HASH
    assert lines[2].hash == SECOND_HASH


def test_pick_lines():
    records = parse_blame(MULTIPLE_LINES)
    assert pick_lines(records, [0, 2, 3, -1]) == {2: records[1]}
    assert pick_lines(records, []) == {}