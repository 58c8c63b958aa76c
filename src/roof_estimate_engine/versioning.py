from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Sequence

from .errors import EstimateNotDeletable, InvalidStatusTransition
from .models.estimate import Estimate, EstimateStatus


class VersioningPolicy(str, Enum):
    supersede_on_create = "SUPERSEDE_ON_CREATE"
    additive = "ADDITIVE"


ALLOWED_TRANSITIONS: Mapping[EstimateStatus, frozenset[EstimateStatus]] = {
    EstimateStatus.draft: frozenset({EstimateStatus.sent}),
    EstimateStatus.sent: frozenset(
        {EstimateStatus.accepted, EstimateStatus.declined, EstimateStatus.expired}
    ),
    EstimateStatus.accepted: frozenset({EstimateStatus.expired}),
    EstimateStatus.declined: frozenset({EstimateStatus.expired}),
    EstimateStatus.expired: frozenset(),
}

_STAMPS: Mapping[EstimateStatus, str] = {
    EstimateStatus.sent: "sent_at",
    EstimateStatus.accepted: "accepted_at",
    EstimateStatus.declined: "declined_at",
    EstimateStatus.expired: "expired_at",
}


@dataclass(frozen=True)
class VersionPlan:
    version: int
    supersede_ids: tuple[str, ...] = ()


def plan_new_version(existing: Sequence[Estimate], policy: VersioningPolicy) -> VersionPlan:
    """Version number for a new estimate and the estimates it supersedes.

    ``existing`` holds every estimate for the same lead.
    """
    version = max((estimate.version for estimate in existing), default=0) + 1
    if policy is VersioningPolicy.supersede_on_create:
        superseded = tuple(estimate.id for estimate in existing if not estimate.is_superseded)
        return VersionPlan(version=version, supersede_ids=superseded)
    return VersionPlan(version=version)


def current_estimates(existing: Sequence[Estimate], policy: VersioningPolicy) -> list[Estimate]:
    live = list(existing)
    if policy is VersioningPolicy.supersede_on_create:
        live = [estimate for estimate in live if not estimate.is_superseded]
    return sorted(live, key=lambda estimate: estimate.version, reverse=True)


def current_estimate(existing: Sequence[Estimate], policy: VersioningPolicy) -> Estimate | None:
    live = current_estimates(existing, policy)
    return live[0] if live else None


def transition(
    estimate: Estimate, target: EstimateStatus, *, now: datetime | None = None
) -> Estimate:
    if target not in ALLOWED_TRANSITIONS[estimate.status]:
        raise InvalidStatusTransition(estimate.status.value, target.value)
    now = now or datetime.now(timezone.utc)
    return estimate.model_copy(
        update={"status": target, _STAMPS[target]: now, "updated_at": now}
    )


def ensure_deletable(estimate: Estimate) -> None:
    if estimate.status is not EstimateStatus.draft:
        raise EstimateNotDeletable(estimate.id, estimate.status.value)


def expire_due(estimates: Sequence[Estimate], *, now: datetime | None = None) -> list[Estimate]:
    """Expire every estimate whose ``valid_until`` has passed.

    Only estimates allowed to move to ``expired`` are returned, already
    transitioned.
    """
    now = now or datetime.now(timezone.utc)
    expired: list[Estimate] = []
    for estimate in estimates:
        valid_until = estimate.valid_until
        if valid_until is None:
            continue
        if valid_until.tzinfo is None:
            valid_until = valid_until.replace(tzinfo=timezone.utc)
        if valid_until > now:
            continue
        if EstimateStatus.expired not in ALLOWED_TRANSITIONS[estimate.status]:
            continue
        expired.append(transition(estimate, EstimateStatus.expired, now=now))
    return expired


__all__ = [
    "ALLOWED_TRANSITIONS",
    "VersionPlan",
    "VersioningPolicy",
    "current_estimate",
    "current_estimates",
    "ensure_deletable",
    "expire_due",
    "plan_new_version",
    "transition",
]
