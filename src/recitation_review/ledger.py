"""The Personal Mushaf: a student's append-only ledger of recitation mistakes."""
import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from recitation_review.catalog import category_for
from recitation_review.dedup import find_duplicate
from recitation_review.errors import NotFoundError, ValidationError
from recitation_review.models import LedgerEntry, MistakeRecord, Timeline, WorkflowStep


@dataclass
class MergeReport:
    added: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.added + self.updated + self.failed


class MistakeLedger:
    """Ordered ledger entries for one student.

    Entries are never duplicated: a mistake that matches an existing entry
    bumps that entry's timeline instead. The whole ledger is the unit that
    gets persisted, and ``version`` is the counter it was loaded at.
    """

    def __init__(self, student_id: int, student_name: str, entries=None, version: int = 0):
        self.student_id = student_id
        self.student_name = student_name
        self.entries: list[LedgerEntry] = list(entries or [])
        self.version = version

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, entry_id: str) -> Optional[LedgerEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def merge(
        self,
        mistake: MistakeRecord,
        workflow_step: WorkflowStep,
        ticket_id: Optional[int] = None,
        marked_by: Optional[int] = None,
        marked_by_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[LedgerEntry, bool]:
        """Merge one mistake into the ledger. Returns (entry, created)."""
        if not mistake.type or not str(mistake.type).strip():
            raise ValidationError("Mistake type is required.")
        now = now or datetime.now()
        mistake = copy.copy(mistake)
        mistake.category = category_for(mistake.type, mistake.category)

        duplicate = find_duplicate(self.entries, mistake, workflow_step)
        if duplicate is not None:
            timeline = duplicate.timeline
            timeline.repeat_count += 1
            timeline.last_marked_at = now
            timeline.resolved = False
            timeline.resolved_at = None
            duplicate.timestamp = now
            if mistake.note:
                duplicate.note = mistake.note
            if mistake.audio_url:
                duplicate.audio_url = mistake.audio_url
            if mistake.tajweed_data:
                duplicate.tajweed_data = mistake.tajweed_data
            if marked_by is not None:
                duplicate.marked_by = marked_by
            if marked_by_name:
                duplicate.marked_by_name = marked_by_name
            if ticket_id is not None:
                duplicate.ticket_id = ticket_id
            return duplicate, False

        entry = LedgerEntry(
            id=uuid.uuid4().hex,
            type=mistake.type,
            category=mistake.category,
            workflow_step=workflow_step,
            page=mistake.page,
            surah=mistake.surah,
            ayah=mistake.ayah,
            word_index=mistake.word_index,
            letter_index=mistake.letter_index,
            position=mistake.position,
            tajweed_data=mistake.tajweed_data,
            note=mistake.note,
            audio_url=mistake.audio_url,
            timeline=Timeline(first_marked_at=now, last_marked_at=now, repeat_count=1, resolved=False),
            ticket_id=ticket_id,
            marked_by=marked_by,
            marked_by_name=marked_by_name,
            timestamp=mistake.timestamp or now,
        )
        self.entries.append(entry)
        return entry, True

    def resolve(self, entry_id: str, now: Optional[datetime] = None) -> LedgerEntry:
        entry = self.get(entry_id)
        if entry is None:
            raise NotFoundError(f"Mistake {entry_id} not found in ledger.")
        entry.timeline.resolved = True
        entry.timeline.resolved_at = now or datetime.now()
        return entry

    def by_workflow_step(self, step: WorkflowStep) -> list[LedgerEntry]:
        return [e for e in self.entries if e.workflow_step == step]
