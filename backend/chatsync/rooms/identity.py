"""Canonical room addressing.

A room's ID is a pure function of its two participants, independent of who
initiates contact: the IDs are sorted and joined with a separator.
"""
DEFAULT_SEPARATOR = "_"


def resolve_room_id(user_a: str, user_b: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """Return the canonical room ID for a pair of users.

    ``resolve_room_id(a, b) == resolve_room_id(b, a)`` for all inputs.

    Raises:
        ValueError: If either ID is empty.
    """
    if not user_a or not user_b:
        raise ValueError("Both participant IDs are required to resolve a room")
    first, second = sorted((user_a, user_b))
    return f"{first}{separator}{second}"

