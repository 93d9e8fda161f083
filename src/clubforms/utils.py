from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

import orjson
import ulid

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9_\- .]+")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_iso(dt: datetime) -> str:
    return ensure_aware(dt).astimezone(timezone.utc).isoformat()


def parse_dt(value: Any) -> datetime:
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, str):
        return ensure_aware(datetime.fromisoformat(value))
    raise ValueError(f"Invalid timestamp: {value!r}")


def format_dt(value: Any) -> str:
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    return str(value or "")


def dumps_json(value: Any) -> str:
    return orjson.dumps(value).decode("utf-8")


def loads_json(value: str | None) -> Any:
    if not value:
        return None
    return orjson.loads(value)


def new_ulid() -> str:
    value = ulid.new()
    return getattr(value, "str", str(value))


def safe_filename(value: str, fallback: str = "form") -> str:
    cleaned = _UNSAFE_FILENAME.sub("_", value).strip(" ._")
    return cleaned or fallback
