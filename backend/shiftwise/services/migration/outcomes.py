"""Per-entity reconciliation outcomes."""

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import UUID


class OutcomeStatus(str, enum.Enum):
    """What happened to one guest record."""

    MIGRATED = "migrated"  # inserted as a new cloud row
    MATCHED = "matched"  # mapped onto an existing cloud row
    SKIPPED = "skipped"  # not written; see reason


@dataclass(frozen=True)
class EntityOutcome:
    entity_type: str
    local_id: str
    status: OutcomeStatus
    cloud_id: Optional[UUID] = None
    reason: Optional[str] = None


@dataclass
class ReconcileReport:
    """Local-id to cloud-id mapping plus one outcome per input record."""

    entity_type: str
    mapping: Dict[str, UUID] = field(default_factory=dict)
    outcomes: List[EntityOutcome] = field(default_factory=list)

    def migrated(self, local_id: str, cloud_id: UUID) -> None:
        self.mapping[local_id] = cloud_id
        self.outcomes.append(
            EntityOutcome(self.entity_type, local_id, OutcomeStatus.MIGRATED, cloud_id)
        )

    def matched(self, local_id: str, cloud_id: UUID) -> None:
        self.mapping[local_id] = cloud_id
        self.outcomes.append(
            EntityOutcome(self.entity_type, local_id, OutcomeStatus.MATCHED, cloud_id)
        )

    def skipped(self, local_id: str, reason: str) -> None:
        self.outcomes.append(
            EntityOutcome(self.entity_type, local_id, OutcomeStatus.SKIPPED, reason=reason)
        )

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def migrated_count(self) -> int:
        return self.count(OutcomeStatus.MIGRATED)

    @property
    def matched_count(self) -> int:
        return self.count(OutcomeStatus.MATCHED)

    @property
    def skipped_outcomes(self) -> List[EntityOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.SKIPPED]
