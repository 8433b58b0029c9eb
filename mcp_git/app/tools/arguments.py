"""타입이 없는 JSON 인자 매핑에서 값을 안전하게 꺼내는 헬퍼예요.

모든 함수는 전체 함수(total)예요. 키가 없거나 타입이 맞지 않으면 예외 대신
기본값을 돌려줘요.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def get_str(arguments: Mapping[str, Any], key: str, default: str = "") -> str:
    value = arguments.get(key)
    if isinstance(value, str):
        return value
    return default


def get_int(arguments: Mapping[str, Any], key: str, default: int) -> int:
    """정수 값을 꺼내요. JSON 숫자는 float로 올 수 있어서 정수로 잘라요."""
    value = arguments.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def get_bool(arguments: Mapping[str, Any], key: str, default: bool) -> bool:
    value = arguments.get(key)
    if isinstance(value, bool):
        return value
    return default


def get_str_list(arguments: Mapping[str, Any], key: str) -> list[str]:
    """문자열 목록을 꺼내요. 문자열이 아닌 항목은 건너뛰어요."""
    value = arguments.get(key)
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []
