"""Recency classification, filtering and statistics over a mistake ledger."""
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from recitation_review.models import LedgerEntry, Recency, WorkflowStep

RECENT_DAYS = 7
TREND_DAYS = 30
REPEAT_OFFENDER_THRESHOLD = 3
TOP_TYPES = 10


@dataclass
class MistakeFilters:
    workflow_step: Optional[str] = None
    page: Optional[int] = None
    marked_on: Optional[date] = None
    recency: Optional[Recency] = None
    type: Optional[str] = None
    category: Optional[str] = None
    resolved: Optional[bool] = None


def classify_recency(last_marked_at: Optional[datetime], now: Optional[datetime] = None) -> Recency:
    if last_marked_at is None:
        return Recency.HISTORICAL
    now = now or datetime.now()
    if last_marked_at.date() == now.date():
        return Recency.TODAY
    if last_marked_at >= now - timedelta(days=RECENT_DAYS):
        return Recency.RECENT
    return Recency.HISTORICAL


def apply_filters(
    entries: Iterable[LedgerEntry],
    filters: Optional[MistakeFilters] = None,
    now: Optional[datetime] = None,
) -> list[LedgerEntry]:
    entries = list(entries)
    if filters is None:
        return entries
    if filters.workflow_step and filters.workflow_step != "all":
        step = WorkflowStep(filters.workflow_step)
        entries = [e for e in entries if e.workflow_step == step]
    if filters.page is not None:
        entries = [e for e in entries if e.page == filters.page]
    if filters.marked_on is not None:
        entries = [
            e for e in entries
            if e.timeline.last_marked_at and e.timeline.last_marked_at.date() == filters.marked_on
        ]
    if filters.recency is not None:
        entries = [e for e in entries if classify_recency(e.timeline.last_marked_at, now) == filters.recency]
    if filters.type:
        entries = [e for e in entries if e.type == filters.type]
    if filters.category:
        entries = [e for e in entries if e.category == filters.category]
    if filters.resolved is not None:
        entries = [e for e in entries if e.timeline.resolved == filters.resolved]
    return entries


def display_mistake(entry: LedgerEntry, now: Optional[datetime] = None) -> dict:
    tl = entry.timeline
    return {
        "id": entry.id,
        "type": entry.type,
        "category": entry.category,
        "page": entry.page,
        "surah": entry.surah,
        "ayah": entry.ayah,
        "word_index": entry.word_index,
        "letter_index": entry.letter_index,
        "position": {"x": entry.position.x, "y": entry.position.y} if entry.position else None,
        "note": entry.note,
        "audio_url": entry.audio_url,
        "workflow_step": entry.workflow_step.value,
        "recency": classify_recency(tl.last_marked_at, now).value,
        "repeat_count": tl.repeat_count,
        "resolved": tl.resolved,
        "first_marked_at": tl.first_marked_at,
        "last_marked_at": tl.last_marked_at,
        "ticket_id": entry.ticket_id,
        "marked_by_name": entry.marked_by_name,
    }


def basic_statistics(entries: list[LedgerEntry]) -> dict:
    by_step = Counter(e.workflow_step.value for e in entries)
    by_category = Counter(e.category for e in entries)
    resolved = sum(1 for e in entries if e.timeline.resolved)
    return {
        "total": len(entries),
        "by_workflow_step": dict(by_step),
        "by_category": dict(by_category),
        "resolved": resolved,
        "unresolved": len(entries) - resolved,
    }


def summarize(
    entries: Iterable[LedgerEntry],
    filters: Optional[MistakeFilters] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Filter a ledger's entries and return display rows plus counts."""
    selected = apply_filters(entries, filters, now)
    return {
        "mistakes": [display_mistake(e, now) for e in selected],
        "statistics": basic_statistics(selected),
    }


def detailed_statistics(entries: Iterable[LedgerEntry], now: Optional[datetime] = None) -> dict:
    """Counts by step, category and type, repeat offenders, a 30-day trend and top types."""
    entries = list(entries)
    now = now or datetime.now()
    stats = basic_statistics(entries)
    for step in WorkflowStep:
        stats["by_workflow_step"].setdefault(step.value, 0)

    by_type = Counter(e.type for e in entries)
    cutoff = now - timedelta(days=TREND_DAYS)
    trend = Counter(
        e.timeline.last_marked_at.date().isoformat()
        for e in entries
        if e.timeline.last_marked_at and e.timeline.last_marked_at >= cutoff
    )
    most_common = sorted(by_type.items(), key=lambda kv: kv[1], reverse=True)[:TOP_TYPES]

    stats.update({
        "by_type": dict(by_type),
        "repeat_offenders": sum(1 for e in entries if e.timeline.repeat_count > REPEAT_OFFENDER_THRESHOLD),
        "trend": [{"date": d, "count": c} for d, c in sorted(trend.items())],
        "most_common_types": [{"type": t, "count": c} for t, c in most_common],
    })
    return stats


def group_by_date(entries: Iterable[LedgerEntry]) -> dict[str, list[LedgerEntry]]:
    grouped: dict[str, list[LedgerEntry]] = {}
    for entry in entries:
        if entry.timeline.last_marked_at:
            grouped.setdefault(entry.timeline.last_marked_at.date().isoformat(), []).append(entry)
    return grouped


def mistake_color(category: str, recency: Recency) -> str:
    """Rich color for a mistake: gray for tajweed, yellow for atkees, red otherwise."""
    if category == "tajweed":
        return "grey50"
    if category == "atkees":
        return {Recency.TODAY: "yellow1", Recency.RECENT: "yellow3"}.get(recency, "dark_goldenrod")
    return {Recency.TODAY: "bright_red", Recency.RECENT: "red"}.get(recency, "dark_red")
