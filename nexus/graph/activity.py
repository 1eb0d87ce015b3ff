"""Reduce logged notes/interactions to per-contact count and most recent date."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from nexus.models import ActivityRecord


@dataclass(frozen=True)
class ActivityStats:
    count: int = 0
    most_recent: datetime | None = None

    def merge(self, other: ActivityStats) -> ActivityStats:
        """Combine the stats of two contact cards that describe the same person."""
        if self.most_recent is None:
            latest = other.most_recent
        elif other.most_recent is None:
            latest = self.most_recent
        else:
            latest = max(self.most_recent, other.most_recent)
        return ActivityStats(count=self.count + other.count, most_recent=latest)


NO_ACTIVITY = ActivityStats()


def aggregate_activity(records: Iterable[ActivityRecord]) -> dict[str, ActivityStats]:
    """Single pass over the activity set, keyed by contact id."""
    counts: dict[str, int] = {}
    latest: dict[str, datetime] = {}
    for record in records:
        counts[record.contact_id] = counts.get(record.contact_id, 0) + 1
        current = latest.get(record.contact_id)
        if current is None or record.entry_date > current:
            latest[record.contact_id] = record.entry_date
    return {contact_id: ActivityStats(count, latest.get(contact_id)) for contact_id, count in counts.items()}


def stats_for(activity: dict[str, ActivityStats], contact_ids: Iterable[str]) -> ActivityStats:
    """Union of the stats of several contact ids; contacts without activity contribute nothing."""
    combined = NO_ACTIVITY
    for contact_id in contact_ids:
        combined = combined.merge(activity.get(contact_id, NO_ACTIVITY))
    return combined
