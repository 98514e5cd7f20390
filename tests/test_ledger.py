from datetime import datetime, timedelta

import pytest

from recitation_review.errors import NotFoundError, ValidationError
from recitation_review.ledger import MistakeLedger
from recitation_review.models import MistakeRecord, Position, WorkflowStep
from recitation_review.repository import mistake_from_dict
from recitation_review.statistics import basic_statistics

NOW = datetime(2026, 3, 10, 9, 30)


def _madd(**overrides):
    fields = dict(type="madd", category="tajweed", page=3, surah=2, ayah=2, word_index=2)
    fields.update(overrides)
    return MistakeRecord(**fields)


def test_first_merge_creates_entry():
    ledger = MistakeLedger(1, "Yusuf Ali")
    entry, created = ledger.merge(_madd(), WorkflowStep.SABQ, ticket_id=7, marked_by=3, marked_by_name="Umar", now=NOW)
    assert created is True
    assert len(ledger) == 1
    assert entry.timeline.first_marked_at == NOW
    assert entry.timeline.last_marked_at == NOW
    assert entry.timeline.repeat_count == 1
    assert entry.timeline.resolved is False
    assert entry.ticket_id == 7
    assert entry.marked_by_name == "Umar"
    assert entry.workflow_step == WorkflowStep.SABQ


def test_duplicate_merge_increments_repeat_count():
    ledger = MistakeLedger(1, "Yusuf Ali")
    ledger.merge(_madd(position=Position(50, 50)), WorkflowStep.SABQ, now=NOW)
    later = NOW + timedelta(days=2)
    entry, created = ledger.merge(_madd(position=Position(53, 54)), WorkflowStep.SABQ, now=later)
    assert created is False
    assert len(ledger) == 1
    assert entry.timeline.repeat_count == 2
    assert entry.timeline.first_marked_at == NOW
    assert entry.timeline.last_marked_at == later


def test_repeat_reopens_resolved_entry():
    ledger = MistakeLedger(1, "Yusuf Ali")
    entry, _ = ledger.merge(_madd(), WorkflowStep.SABQ, now=NOW)
    ledger.resolve(entry.id, now=NOW)
    assert entry.timeline.resolved is True
    ledger.merge(_madd(), WorkflowStep.SABQ, now=NOW + timedelta(days=1))
    assert entry.timeline.resolved is False
    assert entry.timeline.resolved_at is None


def test_latest_annotation_wins():
    ledger = MistakeLedger(1, "Yusuf Ali")
    entry, _ = ledger.merge(_madd(note="stretch 4 counts", audio_url="a.mp3"), WorkflowStep.SABQ, now=NOW)
    ledger.merge(_madd(note="still short", tajweed_data={"stretchCount": 4}), WorkflowStep.SABQ, now=NOW)
    assert entry.note == "still short"
    assert entry.audio_url == "a.mp3"
    assert entry.tajweed_data == {"stretchCount": 4}


def test_annotation_kept_when_not_supplied():
    ledger = MistakeLedger(1, "Yusuf Ali")
    entry, _ = ledger.merge(_madd(note="first note"), WorkflowStep.SABQ, now=NOW)
    ledger.merge(_madd(), WorkflowStep.SABQ, now=NOW)
    assert entry.note == "first note"


def test_missing_category_is_inferred_from_type():
    ledger = MistakeLedger(1, "Yusuf Ali")
    entry, _ = ledger.merge(MistakeRecord(type="wrong_stop", category=""), WorkflowStep.SABQI, now=NOW)
    assert entry.category == "stop"


def test_unknown_type_and_category_becomes_other():
    ledger = MistakeLedger(1, "Yusuf Ali")
    entry, _ = ledger.merge(MistakeRecord(type="mumbling", category="bogus"), WorkflowStep.SABQ, now=NOW)
    assert entry.category == "other"


def test_merge_without_type_raises():
    ledger = MistakeLedger(1, "Yusuf Ali")
    with pytest.raises(ValidationError):
        ledger.merge(MistakeRecord(type=""), WorkflowStep.SABQ)
    assert len(ledger) == 0


def test_merge_does_not_mutate_input_record():
    record = MistakeRecord(type="wrong_stop", category="")
    MistakeLedger(1, "Yusuf Ali").merge(record, WorkflowStep.SABQ, now=NOW)
    assert record.category == ""


def test_resolve_unknown_entry_raises():
    with pytest.raises(NotFoundError):
        MistakeLedger(1, "Yusuf Ali").resolve("missing")


def test_by_workflow_step():
    ledger = MistakeLedger(1, "Yusuf Ali")
    ledger.merge(_madd(), WorkflowStep.SABQ, now=NOW)
    ledger.merge(_madd(), WorkflowStep.MANZIL, now=NOW)
    assert len(ledger.by_workflow_step(WorkflowStep.MANZIL)) == 1
    assert len(ledger) == 2


def test_category_left_out_is_inferred_from_type():
    ledger = MistakeLedger(1, "Yusuf Ali")
    entry, _ = ledger.merge(MistakeRecord(type="madd"), WorkflowStep.SABQ, now=NOW)
    assert entry.category == "tajweed"


def test_stored_mistake_without_category_is_inferred():
    ledger = MistakeLedger(1, "Yusuf Ali")
    entry, _ = ledger.merge(mistake_from_dict({"type": "madd", "page": 3}), WorkflowStep.SABQ, now=NOW)
    assert entry.category == "tajweed"
    # the same mark with its category spelled out is a repeat, not a new entry
    again, created = ledger.merge(_madd(surah=None, ayah=None, word_index=None), WorkflowStep.SABQ, now=NOW)
    assert created is False
    assert again is entry


def test_by_category_counts_inferred_category():
    ledger = MistakeLedger(1, "Yusuf Ali")
    ledger.merge(MistakeRecord(type="madd"), WorkflowStep.SABQ, now=NOW)
    ledger.merge(MistakeRecord(type="wrong_stop", page=4), WorkflowStep.SABQ, now=NOW)
    assert basic_statistics(ledger.entries)["by_category"] == {"tajweed": 1, "stop": 1}
