"""GitPython으로 구현한 Git 작업 모음이에요.

모든 메서드는 동기 함수라서 도구 핸들러가 `asyncio.to_thread`로 호출해요.
`raw_command`만 외부 `git` 바이너리를 직접 실행하므로 비동기예요.
GitPython 예외는 전부 `GitOperationError`로 바꿔서 사람이 읽을 수 있는
메시지만 밖으로 나가요.
"""

from __future__ import annotations

import asyncio
import contextlib
import fnmatch
import os
import shlex
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone

from git import Actor, PushInfo, Repo
from git.exc import BadName, GitError, InvalidGitRepositoryError, NoSuchPathError

from libs.common.errors import CommandTimeoutError, GitOperationError

DEFAULT_CONTEXT_LINES = 3
DEFAULT_MAX_COUNT = 10
DEFAULT_REMOTE = "origin"
ALL_TAGS_REFSPEC = "refs/tags/*:refs/tags/*"

_BRANCH_TYPE_FLAGS: dict[str, tuple[str, ...]] = {
    "local": (),
    "remote": ("-r",),
    "all": ("-a",),
}


@dataclass(frozen=True, slots=True)
class GitIdentity:
    name: str = "MCP Git Server"
    email: str = "mcp-git@example.com"

    def actor(self) -> Actor:
        return Actor(self.name, self.email)


def parse_timestamp(value: str) -> datetime:
    """RFC 3339, ``YYYY-MM-DDTHH:MM:SS``, ``YYYY-MM-DD``, ``Jan 2 2006`` 형식을 받아요.

    시간대가 없으면 UTC로 취급해요.
    """
    text = value.strip()
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.strptime(text, "%b %d %Y")
        except ValueError:
            parsed = None
    if parsed is None:
        raise GitOperationError(f"타임스탬프를 해석하지 못했어요: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class GitOperations:
    def __init__(self, *, identity: GitIdentity | None = None) -> None:
        self._identity = identity or GitIdentity()

    @property
    def identity(self) -> GitIdentity:
        return self._identity

    @contextlib.contextmanager
    def _open(self, repo_path: str, action: str) -> Iterator[Repo]:
        try:
            repo = Repo(repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError) as exc:
            raise GitOperationError(f"저장소를 열지 못했어요: {repo_path}") from exc
        try:
            yield repo
        except GitOperationError:
            raise
        except (GitError, BadName, ValueError, IndexError, OSError) as exc:
            raise GitOperationError(f"{action}에 실패했어요: {exc}") from exc
        finally:
            repo.close()

    # ── 작업 트리 / 인덱스 ──────────────────────────────────────────────────

    def status(self, repo_path: str) -> str:
        with self._open(repo_path, "상태 조회") as repo:
            return repo.git.status()

    def diff_unstaged(self, repo_path: str, context_lines: int = DEFAULT_CONTEXT_LINES) -> str:
        with self._open(repo_path, "unstaged diff") as repo:
            output = repo.git.diff(f"--unified={max(context_lines, 0)}")
        return output or "no unstaged changes"

    def diff_staged(self, repo_path: str, context_lines: int = DEFAULT_CONTEXT_LINES) -> str:
        with self._open(repo_path, "staged diff") as repo:
            output = repo.git.diff(f"--unified={max(context_lines, 0)}", "--cached")
        return output or "no staged changes"

    def diff(self, repo_path: str, target: str, context_lines: int = DEFAULT_CONTEXT_LINES) -> str:
        if not target:
            raise GitOperationError("비교할 target이 필요해요.")
        with self._open(repo_path, "diff") as repo:
            try:
                repo.rev_parse(target)
            except (BadName, ValueError) as exc:
                raise GitOperationError(f"target '{target}'을 해석하지 못했어요: {exc}") from exc
            output = repo.git.diff(f"--unified={max(context_lines, 0)}", target)
        return output or f"no differences with {target}"

    def commit(self, repo_path: str, message: str) -> str:
        if not message.strip():
            raise GitOperationError("커밋 메시지가 필요해요.")
        actor = self._identity.actor()
        with self._open(repo_path, "커밋") as repo:
            created = repo.index.commit(message, author=actor, committer=actor)
        return f"Changes committed successfully with hash {created.hexsha}"

    def add(self, repo_path: str, files: list[str]) -> str:
        if not files:
            raise GitOperationError("스테이징할 파일 목록이 비어 있어요.")
        with self._open(repo_path, "스테이징") as repo:
            repo.git.add("--", *files)
        return "Files staged successfully"

    def reset(self, repo_path: str) -> str:
        with self._open(repo_path, "reset") as repo:
            repo.index.reset()
        return "All staged changes reset"

    # ── 히스토리 ────────────────────────────────────────────────────────────

    def log(
        self,
        repo_path: str,
        max_count: int = DEFAULT_MAX_COUNT,
        start_timestamp: str = "",
        end_timestamp: str = "",
    ) -> list[str]:
        start = parse_timestamp(start_timestamp) if start_timestamp else None
        end = parse_timestamp(end_timestamp) if end_timestamp else None

        entries: list[str] = []
        if max_count <= 0:
            return entries
        with self._open(repo_path, "로그 조회") as repo:
            for commit in repo.iter_commits():
                authored = commit.authored_datetime
                if start is not None and authored < start:
                    continue
                if end is not None and authored > end:
                    continue
                entries.append(
                    f"Commit: {commit.hexsha}\n"
                    f"Author: {commit.author.name}\n"
                    f"Date: {authored.isoformat()}\n"
                    f"Message: {str(commit.message).strip()}\n"
                )
                if len(entries) >= max_count:
                    break
        return entries

    def show(self, repo_path: str, revision: str) -> str:
        if not revision:
            raise GitOperationError("revision이 필요해요.")
        with self._open(repo_path, "커밋 조회") as repo:
            commit = repo.commit(revision)
            patch = repo.git.show(commit.hexsha, "--format=", "--patch")
            header = (
                f"Commit: {commit.hexsha}\n"
                f"Author: {commit.author.name}\n"
                f"Date: {commit.authored_datetime.isoformat()}\n"
                f"Message: {str(commit.message).strip()}\n"
            )
        if not patch.strip():
            return header
        return f"{header}\n{patch.strip()}\n"

    # ── 브랜치 ──────────────────────────────────────────────────────────────

    def create_branch(self, repo_path: str, branch_name: str, base_branch: str = "") -> str:
        if not branch_name:
            raise GitOperationError("branch_name이 필요해요.")
        with self._open(repo_path, "브랜치 생성") as repo:
            if base_branch:
                if base_branch not in repo.heads:
                    raise GitOperationError(f"기준 브랜치를 찾지 못했어요: {base_branch}")
                base_commit = repo.heads[base_branch].commit
            else:
                base_commit = repo.head.commit
            if branch_name in repo.heads:
                raise GitOperationError(f"이미 있는 브랜치예요: {branch_name}")
            repo.create_head(branch_name, base_commit)
        return f"Created branch '{branch_name}' from '{base_branch or 'HEAD'}'"

    def checkout(self, repo_path: str, branch_name: str) -> str:
        if not branch_name:
            raise GitOperationError("branch_name이 필요해요.")
        with self._open(repo_path, "체크아웃") as repo:
            if branch_name not in repo.heads:
                raise GitOperationError(f"브랜치를 찾지 못했어요: {branch_name}")
            repo.heads[branch_name].checkout()
        return f"Switched to branch '{branch_name}'"

    def branch(
        self,
        repo_path: str,
        branch_type: str = "local",
        contains: str = "",
        not_contains: str = "",
    ) -> str:
        flags = _BRANCH_TYPE_FLAGS.get(branch_type)
        if flags is None:
            raise GitOperationError(f"지원하지 않는 branch_type이에요: {branch_type}")
        args = list(flags)
        if contains:
            args.extend(["--contains", contains])
        if not_contains:
            args.extend(["--no-contains", not_contains])
        with self._open(repo_path, "브랜치 조회") as repo:
            return repo.git.branch(*args)

    # ── 저장소 ──────────────────────────────────────────────────────────────

    def init(self, repo_path: str, bare: bool = False) -> str:
        if not repo_path:
            raise GitOperationError("저장소 경로가 비어 있어요.")
        try:
            os.makedirs(repo_path, exist_ok=True)
            Repo.init(repo_path, bare=bare).close()
        except (GitError, OSError) as exc:
            raise GitOperationError(f"저장소 초기화에 실패했어요: {exc}") from exc
        kind = "bare" if bare else "regular"
        return f"Initialized empty Git repository ({kind}) in {repo_path}"

    def list_repositories(self, search_path: str = "", recursive: bool = False) -> list[str]:
        root = search_path or os.getcwd()
        if not os.path.isdir(root):
            raise GitOperationError(f"디렉터리를 찾지 못했어요: {root}")
        if not recursive:
            return [root] if os.path.exists(os.path.join(root, ".git")) else []

        repositories: list[str] = []
        for dirpath, dirnames, _ in os.walk(root):
            dirnames.sort()
            if ".git" in dirnames:
                repositories.append(dirpath)
                dirnames.remove(".git")
        return repositories

    # ── 원격 ────────────────────────────────────────────────────────────────

    def push(self, repo_path: str, remote: str = "", refspec: str = "", tags: bool = False) -> str:
        remote_name = remote or DEFAULT_REMOTE
        refspecs = [refspec] if refspec else []
        if tags:
            refspecs.append(ALL_TAGS_REFSPEC)
        with self._open(repo_path, "push") as repo:
            up_to_date = self._push(repo, remote_name, refspecs)
        if up_to_date:
            return "Everything up-to-date"

        message = f"Successfully pushed to {remote_name}"
        if tags:
            message += " (including tags)"
        if refspec:
            message += f" with refspec: {refspec}"
        return message

    def push_tags(self, repo_path: str, remote: str = "", tag_name: str = "") -> str:
        remote_name = remote or DEFAULT_REMOTE
        if tag_name:
            refspecs = [f"refs/tags/{tag_name}:refs/tags/{tag_name}"]
            message = f"Pushed tag '{tag_name}' to {remote_name}"
        else:
            refspecs = [ALL_TAGS_REFSPEC]
            message = f"Pushed all tags to {remote_name}"
        with self._open(repo_path, "태그 push") as repo:
            up_to_date = self._push(repo, remote_name, refspecs)
        return "Everything up-to-date" if up_to_date else message

    @staticmethod
    def _push(repo: Repo, remote_name: str, refspecs: list[str]) -> bool:
        """push를 실행하고 모든 ref가 이미 최신이었는지 반환해요."""
        try:
            remote = repo.remote(remote_name)
        except ValueError as exc:
            raise GitOperationError(f"원격 저장소를 찾지 못했어요: '{remote_name}'") from exc

        results = remote.push(refspec=refspecs or None)
        for info in results:
            if info.flags & (PushInfo.ERROR | PushInfo.REJECTED | PushInfo.REMOTE_REJECTED):
                raise GitOperationError(f"push에 실패했어요: {info.summary.strip()}")
        return bool(results) and all(info.flags & PushInfo.UP_TO_DATE for info in results)

    # ── 태그 ────────────────────────────────────────────────────────────────

    def create_tag(self, repo_path: str, tag_name: str, message: str = "", annotated: bool = True) -> str:
        if not tag_name:
            raise GitOperationError("tag_name이 필요해요.")
        with self._open(repo_path, "태그 생성") as repo:
            head_commit = repo.head.commit
            if annotated:
                with repo.git.custom_environment(
                    GIT_COMMITTER_NAME=self._identity.name,
                    GIT_COMMITTER_EMAIL=self._identity.email,
                ):
                    repo.create_tag(tag_name, ref=head_commit, message=message or tag_name)
            else:
                repo.create_tag(tag_name, ref=head_commit)
        kind = "annotated" if annotated else "lightweight"
        result = f"Created {kind} tag '{tag_name}' at {head_commit.hexsha[:7]}"
        if message:
            result += f" with message: {message}"
        return result

    def delete_tag(self, repo_path: str, tag_name: str) -> str:
        with self._open(repo_path, "태그 삭제") as repo:
            if not tag_name or tag_name not in repo.tags:
                raise GitOperationError(f"태그를 찾지 못했어요: '{tag_name}'")
            repo.delete_tag(repo.tags[tag_name])
        return f"Deleted tag '{tag_name}'"

    def list_tags(self, repo_path: str, pattern: str = "") -> list[str]:
        with self._open(repo_path, "태그 조회") as repo:
            names = [tag.name for tag in repo.tags]
        if pattern:
            names = [name for name in names if fnmatch.fnmatchcase(name, pattern)]
        return names

    # ── 원시 명령 ───────────────────────────────────────────────────────────

    async def raw_command(self, repo_path: str, command: str, *, timeout_seconds: float = 60.0) -> str:
        """``git``으로 시작하는 명령을 셸 없이 실행하고 stdout+stderr를 반환해요."""
        try:
            parts = shlex.split(command)
        except ValueError as exc:
            raise GitOperationError(f"명령을 해석하지 못했어요: {exc}") from exc
        if not parts:
            raise GitOperationError("명령이 비어 있어요.")
        if parts[0] != "git":
            raise GitOperationError("명령은 'git'으로 시작해야 해요.")

        try:
            process = await asyncio.create_subprocess_exec(
                *parts,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=repo_path or None,
            )
        except OSError as exc:
            raise GitOperationError(f"git 명령 실행에 실패했어요: {exc}") from exc

        try:
            output_bytes, _ = await asyncio.wait_for(process.communicate(), timeout=timeout_seconds)
        except TimeoutError as exc:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise CommandTimeoutError(f"git 명령이 {timeout_seconds}초를 초과해 중단됐어요.") from exc

        output = output_bytes.decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise GitOperationError(f"git 명령이 종료 코드 {process.returncode}로 실패했어요.\nOutput: {output}")
        return output
