from typing import Any


def _fmt(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(getattr(value, "value", value))


def cache_key(**fields: Any) -> str:
    """Canonical ``name=value&...`` string with names sorted, so field order never matters."""
    return "&".join(f"{name}={_fmt(fields[name])}" for name in sorted(fields))
