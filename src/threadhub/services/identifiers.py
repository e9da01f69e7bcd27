"""Community identifiers resolved once at the API boundary."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from threadhub.models import Community

EXTERNAL_ID_PREFIX = "org_"


class RefKind(str, Enum):
    """Where a community identifier came from."""

    STORAGE = "storage"    # Database primary key
    EXTERNAL = "external"  # Identity provider organization ID
    PUBLIC = "public"      # Application-level community id


@dataclass(frozen=True)
class CommunityRef:
    """A community identifier tagged with its provenance."""

    kind: RefKind
    value: str

    @classmethod
    def parse(cls, raw: str) -> CommunityRef:
        raw = raw.strip()
        if not raw:
            raise ValueError("Community identifier must not be empty")
        if raw.startswith(EXTERNAL_ID_PREFIX):
            return cls(RefKind.EXTERNAL, raw)
        if raw.isdigit():
            return cls(RefKind.STORAGE, raw)
        return cls(RefKind.PUBLIC, raw)

    @classmethod
    def external(cls, organization_id: str) -> CommunityRef:
        return cls(RefKind.EXTERNAL, organization_id)

    @classmethod
    def storage(cls, pk: int) -> CommunityRef:
        return cls(RefKind.STORAGE, str(pk))

    def resolve(self, db: Session) -> Community | None:
        """Load the referenced community, or None."""
        if self.kind is RefKind.STORAGE:
            return db.get(Community, int(self.value))
        if self.kind is RefKind.EXTERNAL:
            # Detached organizations keep their id after clerk_id is cleared.
            stmt = select(Community).where(
                or_(Community.clerk_id == self.value, Community.id == self.value)
            )
        else:
            stmt = select(Community).where(Community.id == self.value)
        return db.scalars(stmt).first()

    def __str__(self) -> str:
        return self.value
