import re

from docgen.core.errors import InvalidInput

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)


def is_uuid(value: str | None) -> bool:
    return bool(value) and bool(UUID_RE.match(value))


def require_uuid(value: str | None, field: str) -> str:
    if not is_uuid(value):
        raise InvalidInput(f"Invalid {field} format. Must be a valid UUID")
    return value


def require_prefix(value: str | None, prefix: str, field: str) -> str:
    if not value or not value.startswith(prefix):
        raise InvalidInput(f"Invalid {field}. Must start with '{prefix}'")
    if ".." in value:
        raise InvalidInput(f"Invalid {field}")
    return value
