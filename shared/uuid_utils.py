# shared/uuid_utils.py
"""
UUIDv7 utilities for recipehub.

UUIDv7 identifiers are time-ordered, so rows inserted together stay together
in B-tree indexes. All primary keys generated by the application use them.
"""
from uuid import UUID

from uuid_extensions import uuid7


def generate_uuid7() -> UUID:
    """
    Generate a UUIDv7 (time-ordered UUID).

    Example:
        >>> collection_id = generate_uuid7()
        >>> str(collection_id)
        '018d3f5c-d5a0-7000-a000-123456789abc'
    """
    return uuid7()


def generate_id() -> str:
    """String form of a new UUIDv7, as stored in TEXT primary key columns"""
    return str(generate_uuid7())
