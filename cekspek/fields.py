"""Normalization applied between raw input (forms, JSON import) and stored records."""
import re
from typing import Any, Optional

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase alphanumerics joined by single hyphens, no hyphen at either end."""
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


def _is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def optional_text(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


def optional_number(value: Any) -> Any:
    # Zero means "unknown" for every optional numeric spec field
    if _is_blank(value) or value == 0:
        return None
    if isinstance(value, str):
        value = value.strip()
        try:
            if float(value) == 0:
                return None
        except ValueError:
            pass
    return value


def flag(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return False
    return value
