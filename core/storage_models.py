"""
Storage Data Models Module
Data classes for object-storage types.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class StoredObject:
    """One entry of a bucket listing."""
    key: str
    last_modified: datetime
    size: int


@dataclass
class ListPage:
    """One page of a bucket listing."""
    items: list[StoredObject] = field(default_factory=list)
    is_truncated: bool = False
    next_continuation_token: Optional[str] = None


class StorageError(Exception):
    """Exception raised for object-storage errors."""
    pass
