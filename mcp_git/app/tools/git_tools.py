"""Git 작업을 MCP 도구로 노출하는 디스크립터와 핸들러예요.

핸들러는 인자를 헬퍼로 꺼내고, 블로킹 GitPython 호출은 `asyncio.to_thread`로
넘겨요. 결과 텍스트 형식은 호출자(LLM 에이전트)가 읽기 쉽게 고정해 둬요.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from typing import Any, TypeVar

from mcp_git.app.git_operations import DEFAULT_CONTEXT_LINES, DEFAULT_MAX_COUNT, DEFAULT_REMOTE, GitOperations
from mcp_git.app.mcp_protocol import TextContent, ToolDescriptor
from mcp_git.app.tools.arguments import get_bool, get_int, get_str, get_str_list
from mcp_git.app.tools.base import BaseTool, ToolArguments, ToolContext, ToolHandler, text_result
from mcp_git.app.tools.registry import ToolRegistry

JSON_SCHEMA_DRAFT = "http://json-schema.org/draft-07/schema#"

T = TypeVar("T")

_REPO_PATH = {"type": "string", "description": "Path to Git repository"}
_CONTEXT_LINES = {
    "type": "integer",
    "description": "Number of context lines to show",
    "default": DEFAULT_CONTEXT_LINES,
}


def build_schema(title: str, properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    """draft-07 JSON Schema 문서를 만들어요. 서버는 이 스키마로 검증하지 않아요."""
    schema: dict[str, Any] = {
        "$schema": JSON_SCHEMA_DRAFT,
        "title": title,
        "type": "object",
        "properties": properties,
    }
    if required:
        schema["required"] = required
    return schema


def _descriptor(
    name: str,
    description: str,
    title: str,
    properties: dict[str, Any],
    required: list[str] | None = None,
) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description=description,
        input_schema=build_schema(title, properties, required),
    )


GIT_STATUS = _descriptor(
    "git_status",
    "Shows the working tree status",
    "GitStatus",
    {"repo_path": _REPO_PATH},
    ["repo_path"],
)
GIT_DIFF_UNSTAGED = _descriptor(
    "git_diff_unstaged",
    "Shows changes in working directory not yet staged",
    "GitDiffUnstaged",
    {"repo_path": _REPO_PATH, "context_lines": _CONTEXT_LINES},
    ["repo_path"],
)
GIT_DIFF_STAGED = _descriptor(
    "git_diff_staged",
    "Shows changes that are staged for commit",
    "GitDiffStaged",
    {"repo_path": _REPO_PATH, "context_lines": _CONTEXT_LINES},
    ["repo_path"],
)
GIT_DIFF = _descriptor(
    "git_diff",
    "Shows differences between branches or commits",
    "GitDiff",
    {
        "repo_path": _REPO_PATH,
        "target": {"type": "string", "description": "Target branch or commit to compare with"},
        "context_lines": _CONTEXT_LINES,
    },
    ["repo_path", "target"],
)
GIT_COMMIT = _descriptor(
    "git_commit",
    "Records changes to the repository",
    "GitCommit",
    {"repo_path": _REPO_PATH, "message": {"type": "string", "description": "Commit message"}},
    ["repo_path", "message"],
)
GIT_ADD = _descriptor(
    "git_add",
    "Adds file contents to the staging area",
    "GitAdd",
    {
        "repo_path": _REPO_PATH,
        "files": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Array of file paths to stage",
        },
    },
    ["repo_path", "files"],
)
GIT_RESET = _descriptor(
    "git_reset",
    "Unstages all staged changes",
    "GitReset",
    {"repo_path": _REPO_PATH},
    ["repo_path"],
)
GIT_LOG = _descriptor(
    "git_log",
    "Shows the commit logs with optional date filtering",
    "GitLog",
    {
        "repo_path": _REPO_PATH,
        "max_count": {
            "type": "integer",
            "description": "Maximum number of commits to show",
            "default": DEFAULT_MAX_COUNT,
        },
        "start_timestamp": {"type": "string", "description": "Start timestamp for filtering commits"},
        "end_timestamp": {"type": "string", "description": "End timestamp for filtering commits"},
    },
    ["repo_path"],
)
GIT_CREATE_BRANCH = _descriptor(
    "git_create_branch",
    "Creates a new branch",
    "GitCreateBranch",
    {
        "repo_path": _REPO_PATH,
        "branch_name": {"type": "string", "description": "Name of the new branch"},
        "base_branch": {
            "type": "string",
            "description": "Base branch to create from (defaults to current branch)",
        },
    },
    ["repo_path", "branch_name"],
)
GIT_CHECKOUT = _descriptor(
    "git_checkout",
    "Switches branches",
    "GitCheckout",
    {"repo_path": _REPO_PATH, "branch_name": {"type": "string", "description": "Name of branch to checkout"}},
    ["repo_path", "branch_name"],
)
GIT_SHOW = _descriptor(
    "git_show",
    "Shows the contents of a commit",
    "GitShow",
    {
        "repo_path": _REPO_PATH,
        "revision": {
            "type": "string",
            "description": "The revision (commit hash, branch name, tag) to show",
        },
    },
    ["repo_path", "revision"],
)
GIT_BRANCH = _descriptor(
    "git_branch",
    "List Git branches",
    "GitBranch",
    {
        "repo_path": _REPO_PATH,
        "branch_type": {
            "type": "string",
            "description": (
                "Whether to list local branches ('local'), remote branches ('remote') or all branches('all')"
            ),
            "enum": ["local", "remote", "all"],
            "default": "local",
        },
        "contains": {"type": "string", "description": "The commit sha that branch should contain"},
        "not_contains": {"type": "string", "description": "The commit sha that branch should NOT contain"},
    },
    ["repo_path"],
)
GIT_INIT = _descriptor(
    "git_init",
    "Initialize a new Git repository",
    "GitInit",
    {
        "repo_path": {"type": "string", "description": "Path where to initialize the repository"},
        "bare": {"type": "boolean", "description": "Initialize as bare repository", "default": False},
    },
    ["repo_path"],
)
GIT_PUSH = _descriptor(
    "git_push",
    "Push changes to remote repository",
    "GitPush",
    {
        "repo_path": _REPO_PATH,
        "remote": {"type": "string", "description": "Remote name (default: origin)", "default": DEFAULT_REMOTE},
        "refspec": {
            "type": "string",
            "description": "Refspec to push (e.g., 'refs/heads/main:refs/heads/main')",
        },
        "tags": {"type": "boolean", "description": "Push tags along with commits", "default": False},
    },
    ["repo_path"],
)
GIT_LIST_REPOSITORIES = _descriptor(
    "git_list_repositories",
    "List Git repositories in a directory",
    "GitListRepositories",
    {
        "search_path": {
            "type": "string",
            "description": "Path to search for repositories (default: current directory)",
        },
        "recursive": {"type": "boolean", "description": "Search recursively in subdirectories", "default": False},
    },
)
GIT_CREATE_TAG = _descriptor(
    "git_create_tag",
    "Create a new Git tag",
    "GitCreateTag",
    {
        "repo_path": _REPO_PATH,
        "tag_name": {"type": "string", "description": "Name of the tag to create"},
        "message": {"type": "string", "description": "Tag message (for annotated tags)"},
        "annotated": {"type": "boolean", "description": "Create annotated tag (default: true)", "default": True},
    },
    ["repo_path", "tag_name"],
)
GIT_DELETE_TAG = _descriptor(
    "git_delete_tag",
    "Delete a Git tag",
    "GitDeleteTag",
    {"repo_path": _REPO_PATH, "tag_name": {"type": "string", "description": "Name of the tag to delete"}},
    ["repo_path", "tag_name"],
)
GIT_LIST_TAGS = _descriptor(
    "git_list_tags",
    "List Git tags",
    "GitListTags",
    {"repo_path": _REPO_PATH, "pattern": {"type": "string", "description": "Pattern to filter tags (glob pattern)"}},
    ["repo_path"],
)
GIT_PUSH_TAGS = _descriptor(
    "git_push_tags",
    "Push tags to remote repository",
    "GitPushTags",
    {
        "repo_path": _REPO_PATH,
        "remote": {"type": "string", "description": "Remote name (default: origin)", "default": DEFAULT_REMOTE},
        "tag_name": {
            "type": "string",
            "description": "Specific tag name to push (leave empty to push all tags)",
        },
    },
    ["repo_path"],
)


def _bulleted(header: str, items: list[str]) -> str:
    return "\n".join([header, *(f"- {item}" for item in items)])


class GitToolSet:
    """`GitOperations`를 도구 핸들러로 감싸요.

    ``repo_path``가 비어 있으면 설정된 기본 저장소, 그것도 없으면 현재 디렉터리를
    사용해요. ``git_init``만 예외로 경로를 그대로 써요.
    """

    def __init__(self, *, operations: GitOperations, default_repository: str = "") -> None:
        self._ops = operations
        self._default_repository = default_repository
        self._extra_tools: list[BaseTool] = []

    def attach(self, tool: BaseTool) -> None:
        """클래스 도구를 `git_branch` 다음 자리에 끼워 넣어요."""
        self._extra_tools.append(tool)

    def entries(self) -> list[tuple[ToolDescriptor, ToolHandler]]:
        return [
            (GIT_STATUS, self.git_status),
            (GIT_DIFF_UNSTAGED, self.git_diff_unstaged),
            (GIT_DIFF_STAGED, self.git_diff_staged),
            (GIT_DIFF, self.git_diff),
            (GIT_COMMIT, self.git_commit),
            (GIT_ADD, self.git_add),
            (GIT_RESET, self.git_reset),
            (GIT_LOG, self.git_log),
            (GIT_CREATE_BRANCH, self.git_create_branch),
            (GIT_CHECKOUT, self.git_checkout),
            (GIT_SHOW, self.git_show),
            (GIT_BRANCH, self.git_branch),
            *((tool.to_descriptor(), tool.execute) for tool in self._extra_tools),
            (GIT_INIT, self.git_init),
            (GIT_PUSH, self.git_push),
            (GIT_LIST_REPOSITORIES, self.git_list_repositories),
            (GIT_CREATE_TAG, self.git_create_tag),
            (GIT_DELETE_TAG, self.git_delete_tag),
            (GIT_LIST_TAGS, self.git_list_tags),
            (GIT_PUSH_TAGS, self.git_push_tags),
        ]

    def register_all(self, registry: ToolRegistry) -> None:
        for descriptor, handler in self.entries():
            registry.register(descriptor, handler)

    def resolve_repo_path(self, arguments: ToolArguments) -> str:
        provided = get_str(arguments, "repo_path")
        if provided:
            return provided
        if self._default_repository:
            return self._default_repository
        return os.getcwd()

    async def _run(self, context: ToolContext, func: Callable[..., T], *args: Any) -> T:
        context.raise_if_cancelled()
        return await asyncio.to_thread(func, *args)

    async def git_status(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        result = await self._run(context, self._ops.status, self.resolve_repo_path(arguments))
        return text_result(f"Repository status:\n{result}")

    async def git_diff_unstaged(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        context_lines = get_int(arguments, "context_lines", DEFAULT_CONTEXT_LINES)
        result = await self._run(context, self._ops.diff_unstaged, self.resolve_repo_path(arguments), context_lines)
        return text_result(f"Unstaged changes:\n{result}")

    async def git_diff_staged(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        context_lines = get_int(arguments, "context_lines", DEFAULT_CONTEXT_LINES)
        result = await self._run(context, self._ops.diff_staged, self.resolve_repo_path(arguments), context_lines)
        return text_result(f"Staged changes:\n{result}")

    async def git_diff(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        target = get_str(arguments, "target")
        context_lines = get_int(arguments, "context_lines", DEFAULT_CONTEXT_LINES)
        result = await self._run(context, self._ops.diff, self.resolve_repo_path(arguments), target, context_lines)
        return text_result(f"Diff with {target}:\n{result}")

    async def git_commit(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        message = get_str(arguments, "message")
        return text_result(await self._run(context, self._ops.commit, self.resolve_repo_path(arguments), message))

    async def git_add(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        files = get_str_list(arguments, "files")
        return text_result(await self._run(context, self._ops.add, self.resolve_repo_path(arguments), files))

    async def git_reset(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        return text_result(await self._run(context, self._ops.reset, self.resolve_repo_path(arguments)))

    async def git_log(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        commits = await self._run(
            context,
            self._ops.log,
            self.resolve_repo_path(arguments),
            get_int(arguments, "max_count", DEFAULT_MAX_COUNT),
            get_str(arguments, "start_timestamp"),
            get_str(arguments, "end_timestamp"),
        )
        return text_result("Commit history:\n" + "\n".join(commits))

    async def git_create_branch(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        result = await self._run(
            context,
            self._ops.create_branch,
            self.resolve_repo_path(arguments),
            get_str(arguments, "branch_name"),
            get_str(arguments, "base_branch"),
        )
        return text_result(result)

    async def git_checkout(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        branch_name = get_str(arguments, "branch_name")
        return text_result(await self._run(context, self._ops.checkout, self.resolve_repo_path(arguments), branch_name))

    async def git_show(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        revision = get_str(arguments, "revision")
        return text_result(await self._run(context, self._ops.show, self.resolve_repo_path(arguments), revision))

    async def git_branch(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        result = await self._run(
            context,
            self._ops.branch,
            self.resolve_repo_path(arguments),
            get_str(arguments, "branch_type") or "local",
            get_str(arguments, "contains"),
            get_str(arguments, "not_contains"),
        )
        return text_result(result)

    async def git_init(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        repo_path = get_str(arguments, "repo_path")
        bare = get_bool(arguments, "bare", False)
        return text_result(await self._run(context, self._ops.init, repo_path, bare))

    async def git_push(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        result = await self._run(
            context,
            self._ops.push,
            self.resolve_repo_path(arguments),
            get_str(arguments, "remote"),
            get_str(arguments, "refspec"),
            get_bool(arguments, "tags", False),
        )
        return text_result(result)

    async def git_list_repositories(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        repositories = await self._run(
            context,
            self._ops.list_repositories,
            get_str(arguments, "search_path"),
            get_bool(arguments, "recursive", False),
        )
        if not repositories:
            return text_result("No Git repositories found")
        return text_result(_bulleted("Found Git repositories:", repositories))

    async def git_create_tag(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        result = await self._run(
            context,
            self._ops.create_tag,
            self.resolve_repo_path(arguments),
            get_str(arguments, "tag_name"),
            get_str(arguments, "message"),
            get_bool(arguments, "annotated", True),
        )
        return text_result(result)

    async def git_delete_tag(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        tag_name = get_str(arguments, "tag_name")
        return text_result(await self._run(context, self._ops.delete_tag, self.resolve_repo_path(arguments), tag_name))

    async def git_list_tags(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        tags = await self._run(context, self._ops.list_tags, self.resolve_repo_path(arguments), get_str(arguments, "pattern"))
        if not tags:
            return text_result("No tags found")
        return text_result(_bulleted("Tags:", tags))

    async def git_push_tags(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        result = await self._run(
            context,
            self._ops.push_tags,
            self.resolve_repo_path(arguments),
            get_str(arguments, "remote"),
            get_str(arguments, "tag_name"),
        )
        return text_result(result)
