"""Duplicate detection for mistakes in a student's ledger."""
import math
from typing import Iterable, Optional

from recitation_review.models import LedgerEntry, MistakeRecord, Position, WorkflowStep

# Taps closer than this many pixels on the page count as the same marking.
POSITION_TOLERANCE = 10.0


def position_distance(a: Position, b: Position) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def is_same_mistake(entry: LedgerEntry, candidate: MistakeRecord, workflow_step: WorkflowStep) -> bool:
    if (
        entry.type != candidate.type
        or entry.category != candidate.category
        or entry.page != candidate.page
        or entry.surah != candidate.surah
        or entry.ayah != candidate.ayah
        or entry.word_index != candidate.word_index
        or entry.letter_index != candidate.letter_index
        or entry.workflow_step != workflow_step
    ):
        return False
    if entry.position is not None and candidate.position is not None:
        return position_distance(entry.position, candidate.position) < POSITION_TOLERANCE
    return True


def find_duplicate(
    entries: Iterable[LedgerEntry],
    candidate: MistakeRecord,
    workflow_step: WorkflowStep,
) -> Optional[LedgerEntry]:
    """Return the first ledger entry the candidate duplicates, or None."""
    for entry in entries:
        if is_same_mistake(entry, candidate, workflow_step):
            return entry
    return None
