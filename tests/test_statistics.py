from datetime import date, datetime, timedelta

from recitation_review.ledger import MistakeLedger
from recitation_review.models import MistakeRecord, Recency, WorkflowStep
from recitation_review.statistics import (
    MistakeFilters, apply_filters, classify_recency, detailed_statistics,
    group_by_date, mistake_color, summarize,
)

NOW = datetime(2026, 3, 10, 15, 0)


def _ledger():
    """Four mistakes: one today, one three days ago, one twelve days ago, one resolved."""
    ledger = MistakeLedger(1, "Yusuf Ali")
    ledger.merge(MistakeRecord(type="madd", category="tajweed", page=2), WorkflowStep.SABQ, now=NOW)
    ledger.merge(MistakeRecord(type="memory", category="memory", page=3), WorkflowStep.SABQI, now=NOW - timedelta(days=3))
    ledger.merge(MistakeRecord(type="wrong_stop", category="stop", page=3), WorkflowStep.MANZIL, now=NOW - timedelta(days=12))
    resolved, _ = ledger.merge(MistakeRecord(type="madd", category="tajweed", page=9), WorkflowStep.SABQ, now=NOW - timedelta(days=40))
    ledger.resolve(resolved.id, now=NOW)
    return ledger


def test_classify_recency():
    assert classify_recency(NOW.replace(hour=0, minute=1), NOW) == Recency.TODAY
    assert classify_recency(NOW - timedelta(days=3), NOW) == Recency.RECENT
    assert classify_recency(NOW - timedelta(days=10), NOW) == Recency.HISTORICAL
    assert classify_recency(None, NOW) == Recency.HISTORICAL


def test_yesterday_late_evening_is_recent_not_today():
    assert classify_recency(datetime(2026, 3, 9, 23, 59), NOW) == Recency.RECENT


def test_recent_boundary_is_inclusive():
    assert classify_recency(NOW - timedelta(days=7), NOW) == Recency.RECENT
    assert classify_recency(NOW - timedelta(days=7, seconds=1), NOW) == Recency.HISTORICAL


def test_no_filters_returns_everything():
    assert len(apply_filters(_ledger().entries)) == 4


def test_filter_by_step_all_is_no_filter():
    entries = _ledger().entries
    assert len(apply_filters(entries, MistakeFilters(workflow_step="all"))) == 4
    assert len(apply_filters(entries, MistakeFilters(workflow_step="sabq"))) == 2


def test_filters_combine():
    entries = _ledger().entries
    assert len(apply_filters(entries, MistakeFilters(page=3))) == 2
    assert len(apply_filters(entries, MistakeFilters(page=3, category="stop"))) == 1
    assert len(apply_filters(entries, MistakeFilters(type="madd", resolved=False))) == 1
    assert len(apply_filters(entries, MistakeFilters(marked_on=date(2026, 3, 7)))) == 1


def test_filter_by_recency():
    entries = _ledger().entries
    assert [e.type for e in apply_filters(entries, MistakeFilters(recency=Recency.TODAY), NOW)] == ["madd"]
    assert [e.type for e in apply_filters(entries, MistakeFilters(recency=Recency.RECENT), NOW)] == ["memory"]
    assert len(apply_filters(entries, MistakeFilters(recency=Recency.HISTORICAL), NOW)) == 2


def test_summary_counts_are_consistent():
    result = summarize(_ledger().entries, now=NOW)
    stats = result["statistics"]
    assert stats["total"] == 4
    assert stats["resolved"] + stats["unresolved"] == stats["total"]
    assert sum(stats["by_category"].values()) == stats["total"]
    assert sum(stats["by_workflow_step"].values()) == stats["total"]
    assert len(result["mistakes"]) == 4


def test_summary_rows_carry_recency():
    rows = summarize(_ledger().entries, MistakeFilters(page=2), now=NOW)["mistakes"]
    [row] = rows
    assert row["recency"] == "today"
    assert row["workflow_step"] == "sabq"
    assert row["repeat_count"] == 1


def test_summary_statistics_follow_filters():
    stats = summarize(_ledger().entries, MistakeFilters(category="tajweed"), now=NOW)["statistics"]
    assert stats["total"] == 2
    assert stats["resolved"] == 1


def test_detailed_statistics():
    stats = detailed_statistics(_ledger().entries, now=NOW)
    assert stats["by_workflow_step"] == {"sabq": 2, "sabqi": 1, "manzil": 1}
    assert stats["by_type"] == {"madd": 2, "memory": 1, "wrong_stop": 1}
    assert stats["most_common_types"][0] == {"type": "madd", "count": 2}
    # the 40-day-old entry was resolved today, which does not move last_marked_at
    assert stats["trend"] == [
        {"date": "2026-02-26", "count": 1},
        {"date": "2026-03-07", "count": 1},
        {"date": "2026-03-10", "count": 1},
    ]
    assert stats["repeat_offenders"] == 0


def test_detailed_statistics_fill_missing_steps():
    stats = detailed_statistics([], now=NOW)
    assert stats["by_workflow_step"] == {"sabq": 0, "sabqi": 0, "manzil": 0}
    assert stats["total"] == 0
    assert stats["trend"] == []


def test_repeat_offenders_need_more_than_three():
    ledger = MistakeLedger(1, "Yusuf Ali")
    for _ in range(3):
        ledger.merge(MistakeRecord(type="madd", category="tajweed"), WorkflowStep.SABQ, now=NOW)
    for _ in range(4):
        ledger.merge(MistakeRecord(type="ikhfa", category="tajweed"), WorkflowStep.SABQ, now=NOW)
    assert detailed_statistics(ledger.entries, now=NOW)["repeat_offenders"] == 1


def test_top_types_capped_at_ten():
    ledger = MistakeLedger(1, "Yusuf Ali")
    for i in range(12):
        ledger.merge(MistakeRecord(type=f"type_{i}", category="other"), WorkflowStep.SABQ, now=NOW)
    assert len(detailed_statistics(ledger.entries, now=NOW)["most_common_types"]) == 10


def test_group_by_date():
    grouped = group_by_date(_ledger().entries)
    assert sorted(grouped) == ["2026-01-29", "2026-02-26", "2026-03-07", "2026-03-10"]
    assert grouped["2026-03-10"][0].type == "madd"


def test_mistake_color():
    assert mistake_color("tajweed", Recency.TODAY) == "grey50"
    assert mistake_color("memory", Recency.TODAY) == "bright_red"
    assert mistake_color("memory", Recency.HISTORICAL) == "dark_red"
    assert mistake_color("atkees", Recency.RECENT) == "yellow3"
