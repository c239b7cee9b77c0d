"""Path parameter parsing."""

from uuid import UUID


def parse_uuid(value: object) -> UUID | None:
    """Parse a UUID path/body value; None when it is not one.

    Callers treat an unparseable id exactly like an unknown id (404), so a
    malformed id never discloses anything a well-formed one would not.
    """
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return UUID(value)
    except ValueError:
        return None
