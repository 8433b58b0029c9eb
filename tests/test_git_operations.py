"""GitPython 기반 Git 작업 테스트예요. 임시 저장소에서만 실행해요."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import git
import pytest

from libs.common.errors import CommandTimeoutError, GitOperationError
from mcp_git.app.git_operations import GitIdentity, GitOperations, parse_timestamp
from tests.conftest import requires_git

pytestmark = requires_git


@pytest.fixture
def ops() -> GitOperations:
    return GitOperations(identity=GitIdentity(name="Bot", email="bot@example.com"))


# ─── 타임스탬프 테스트 ───


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2024-03-01T12:30:00Z", datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)),
        ("2024-03-01T12:30:00", datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)),
        ("2024-03-01", datetime(2024, 3, 1, tzinfo=timezone.utc)),
        ("Mar 1 2024", datetime(2024, 3, 1, tzinfo=timezone.utc)),
    ],
)
def test_parse_timestamp_formats(value: str, expected: datetime) -> None:
    assert parse_timestamp(value) == expected


def test_parse_timestamp_rejects_garbage() -> None:
    with pytest.raises(GitOperationError):
        parse_timestamp("yesterday-ish")


# ─── 작업 트리 테스트 ───


def test_status_on_missing_repository(ops: GitOperations, tmp_path: Path) -> None:
    with pytest.raises(GitOperationError, match="저장소를 열지 못했어요"):
        ops.status(str(tmp_path / "missing"))


def test_add_commit_and_log(ops: GitOperations, git_repo: Path) -> None:
    (git_repo / "notes.txt").write_text("first\n", encoding="utf-8")

    assert ops.diff_staged(str(git_repo)) == "no staged changes"
    assert ops.add(str(git_repo), ["notes.txt"]) == "Files staged successfully"
    assert "notes.txt" in ops.diff_staged(str(git_repo))

    result = ops.commit(str(git_repo), "add notes")
    assert result.startswith("Changes committed successfully with hash ")

    entries = ops.log(str(git_repo), max_count=10)
    assert len(entries) == 2
    assert "Author: Bot" in entries[0]
    assert "Message: add notes" in entries[0]
    assert ops.log(str(git_repo), max_count=1) == entries[:1]


def test_add_requires_files(ops: GitOperations, git_repo: Path) -> None:
    with pytest.raises(GitOperationError):
        ops.add(str(git_repo), [])


def test_diff_unstaged_and_reset(ops: GitOperations, git_repo: Path) -> None:
    assert ops.diff_unstaged(str(git_repo)) == "no unstaged changes"
    (git_repo / "README.md").write_text("hello\nworld\n", encoding="utf-8")
    assert "+world" in ops.diff_unstaged(str(git_repo), context_lines=0)

    ops.add(str(git_repo), ["README.md"])
    assert ops.reset(str(git_repo)) == "All staged changes reset"
    assert ops.diff_staged(str(git_repo)) == "no staged changes"
    assert "+world" in ops.diff_unstaged(str(git_repo))


def test_log_filters_by_timestamp(ops: GitOperations, git_repo: Path) -> None:
    assert ops.log(str(git_repo), start_timestamp="2999-01-01") == []
    assert len(ops.log(str(git_repo), end_timestamp="2999-01-01T00:00:00Z")) == 1


# ─── 브랜치 테스트 ───


def test_create_branch_checkout_and_diff(ops: GitOperations, git_repo: Path) -> None:
    repo = git.Repo(git_repo)
    default_branch = repo.active_branch.name
    repo.close()

    assert ops.create_branch(str(git_repo), "feature") == "Created branch 'feature' from 'HEAD'"
    assert ops.checkout(str(git_repo), "feature") == "Switched to branch 'feature'"

    (git_repo / "feature.txt").write_text("feature\n", encoding="utf-8")
    ops.add(str(git_repo), ["feature.txt"])
    ops.commit(str(git_repo), "feature work")

    assert "feature.txt" in ops.diff(str(git_repo), default_branch)
    assert ops.diff(str(git_repo), "feature") == "no differences with feature"

    listed = ops.branch(str(git_repo))
    assert "* feature" in listed
    assert default_branch in listed


def test_create_branch_rejects_duplicates(ops: GitOperations, git_repo: Path) -> None:
    ops.create_branch(str(git_repo), "topic")
    with pytest.raises(GitOperationError, match="이미 있는 브랜치"):
        ops.create_branch(str(git_repo), "topic")
    with pytest.raises(GitOperationError, match="기준 브랜치"):
        ops.create_branch(str(git_repo), "other", "does-not-exist")


def test_branch_rejects_unknown_type(ops: GitOperations, git_repo: Path) -> None:
    with pytest.raises(GitOperationError):
        ops.branch(str(git_repo), "everything")


def test_diff_with_unknown_target(ops: GitOperations, git_repo: Path) -> None:
    with pytest.raises(GitOperationError):
        ops.diff(str(git_repo), "no-such-ref")


def test_show_includes_header_and_patch(ops: GitOperations, git_repo: Path) -> None:
    shown = ops.show(str(git_repo), "HEAD")
    assert "Message: initial commit" in shown
    assert "+hello" in shown


# ─── 저장소 테스트 ───


def test_init_and_list_repositories(ops: GitOperations, tmp_path: Path) -> None:
    first = tmp_path / "workspace" / "alpha"
    second = tmp_path / "workspace" / "nested" / "beta"

    assert ops.init(str(first)) == f"Initialized empty Git repository (regular) in {first}"
    assert ops.init(str(second), bare=False).endswith(str(second))

    workspace = str(tmp_path / "workspace")
    assert ops.list_repositories(workspace) == []
    assert ops.list_repositories(workspace, recursive=True) == [str(first), str(second)]
    assert ops.list_repositories(str(first)) == [str(first)]


def test_init_bare(ops: GitOperations, tmp_path: Path) -> None:
    target = tmp_path / "bare.git"
    assert "(bare)" in ops.init(str(target), bare=True)
    assert (target / "HEAD").exists()


# ─── 태그 테스트 ───


def test_tag_lifecycle(ops: GitOperations, git_repo: Path) -> None:
    created = ops.create_tag(str(git_repo), "v1.0.0", "first release")
    assert created.startswith("Created annotated tag 'v1.0.0' at ")
    assert created.endswith("with message: first release")
    assert ops.create_tag(str(git_repo), "build-1", annotated=False).startswith("Created lightweight tag 'build-1'")

    assert ops.list_tags(str(git_repo)) == ["build-1", "v1.0.0"]
    assert ops.list_tags(str(git_repo), "v*") == ["v1.0.0"]

    assert ops.delete_tag(str(git_repo), "build-1") == "Deleted tag 'build-1'"
    with pytest.raises(GitOperationError):
        ops.delete_tag(str(git_repo), "build-1")


def test_annotated_tag_uses_configured_identity(ops: GitOperations, git_repo: Path) -> None:
    ops.create_tag(str(git_repo), "v2", "second")
    repo = git.Repo(git_repo)
    try:
        tag_object = repo.tags["v2"].tag
        assert tag_object is not None
        assert tag_object.tagger.name == "Bot"
    finally:
        repo.close()


# ─── 원격 테스트 ───


def test_push_to_local_bare_remote(ops: GitOperations, git_repo: Path, tmp_path: Path) -> None:
    remote_path = tmp_path / "remote.git"
    ops.init(str(remote_path), bare=True)
    repo = git.Repo(git_repo)
    branch = repo.active_branch.name
    repo.create_remote("origin", str(remote_path))
    repo.close()

    refspec = f"refs/heads/{branch}:refs/heads/{branch}"
    assert ops.push(str(git_repo), refspec=refspec) == f"Successfully pushed to origin with refspec: {refspec}"
    assert ops.push(str(git_repo), refspec=refspec) == "Everything up-to-date"

    ops.create_tag(str(git_repo), "v1", annotated=False)
    assert ops.push_tags(str(git_repo), tag_name="v1") == "Pushed tag 'v1' to origin"


def test_push_to_missing_remote(ops: GitOperations, git_repo: Path) -> None:
    with pytest.raises(GitOperationError, match="원격 저장소를 찾지 못했어요"):
        ops.push(str(git_repo), remote="nowhere")


# ─── 원시 명령 테스트 ───


@pytest.mark.asyncio
async def test_raw_command_runs_git(ops: GitOperations, git_repo: Path) -> None:
    output = await ops.raw_command(str(git_repo), "git log --format=%s -n 1")
    assert output.strip() == "initial commit"


@pytest.mark.asyncio
async def test_raw_command_requires_git_prefix(ops: GitOperations, git_repo: Path) -> None:
    with pytest.raises(GitOperationError, match="'git'으로 시작"):
        await ops.raw_command(str(git_repo), "rm -rf .")


@pytest.mark.asyncio
async def test_raw_command_reports_failure_output(ops: GitOperations, git_repo: Path) -> None:
    with pytest.raises(GitOperationError, match="Output:"):
        await ops.raw_command(str(git_repo), "git checkout does-not-exist")


@pytest.mark.asyncio
async def test_raw_command_timeout(ops: GitOperations, git_repo: Path) -> None:
    with pytest.raises(CommandTimeoutError):
        await ops.raw_command(str(git_repo), "git -c alias.nap=!sleep\\ 1 nap", timeout_seconds=0.1)
