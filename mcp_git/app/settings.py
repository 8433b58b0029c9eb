from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mcp_git.app.transport import DEFAULT_FRAME_LIMIT


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MCP_GIT_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    server_name: str = "mcp-git"
    server_version: str = "0.0.1"
    repository: str = ""
    verbose: int = 0
    user_name: str = "MCP Git Server"
    user_email: str = "mcp-git@example.com"
    raw_command_timeout_seconds: float = 60.0
    max_frame_bytes: int = DEFAULT_FRAME_LIMIT

    @field_validator("repository", mode="before")
    @classmethod
    def _strip_repository(cls, value: object) -> object:
        """공백뿐인 경로는 "설정 안 됨"으로 취급해요."""
        if isinstance(value, str):
            return value.strip()
        if value is None:
            return ""
        return value

    @field_validator("verbose")
    @classmethod
    def _non_negative_verbose(cls, value: int) -> int:
        return max(value, 0)
