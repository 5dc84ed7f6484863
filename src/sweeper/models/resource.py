"""Resource descriptor model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class ResourceDescriptor:
    """Immutable snapshot of one cloud resource taken at enumeration time.

    The snapshot may be stale by the time it is deleted; the engine accepts
    that and treats deletion as best effort.

    Attributes:
        resource_type: Registered resource type id (e.g. "aws_instance")
        resource_id: Provider identifier used for deletion
        name: Display name (may be empty)
        arn: Amazon Resource Name (optional)
        tags: Resource tags as key-value pairs
        created_at: Creation time, timezone-aware (optional, some types lack it)
        attributes: Extra read-only metadata (e.g. {"VpcId": "vpc-123"})
    """

    resource_type: str
    resource_id: str
    name: str = ""
    arn: Optional[str] = None
    tags: Mapping[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze mapping fields so the snapshot cannot be mutated."""
        if not self.resource_type:
            raise ValueError("resource_type is required")
        if not self.resource_id:
            raise ValueError("resource_id is required")

        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def __hash__(self) -> int:
        return hash((self.resource_type, self.resource_id))

    @property
    def display_name(self) -> str:
        """Name if set, otherwise the resource id."""
        return self.name or self.resource_id

    def to_dict(self) -> dict[str, Any]:
        """Convert descriptor to a plain dictionary for serialization."""
        return {
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "name": self.name,
            "arn": self.arn,
            "tags": dict(self.tags),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
