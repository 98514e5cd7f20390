"""Data classes for the recitation review domain model."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class WorkflowStep(str, Enum):
    SABQ = "sabq"
    SABQI = "sabqi"
    MANZIL = "manzil"


class TicketStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AssignmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Recency(str, Enum):
    TODAY = "today"
    RECENT = "recent"
    HISTORICAL = "historical"


MISTAKE_CATEGORIES = ("tajweed", "letter", "stop", "memory", "other", "atkees")


@dataclass
class User:
    id: int
    full_name: str
    role: str = "student"


@dataclass
class Student:
    id: int
    user_id: int


@dataclass
class Teacher:
    id: int
    user_id: int


@dataclass
class Position:
    x: float
    y: float


@dataclass
class RecitationRange:
    surah: Optional[int] = None
    surah_name: Optional[str] = None
    ayah_from: Optional[int] = None
    ayah_to: Optional[int] = None
    end_surah: Optional[int] = None
    end_surah_name: Optional[str] = None
    juz: Optional[int] = None


@dataclass
class MistakeRecord:
    type: str
    category: Optional[str] = None
    page: Optional[int] = None
    surah: Optional[int] = None
    ayah: Optional[int] = None
    word_index: Optional[int] = None
    letter_index: Optional[int] = None
    position: Optional[Position] = None
    tajweed_data: Optional[dict] = None
    note: Optional[str] = None
    audio_url: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass
class SabqEntry:
    id: str
    recitation_range: Optional[RecitationRange] = None
    mistakes: list[MistakeRecord] = field(default_factory=list)
    comment: Optional[str] = None


@dataclass
class Ticket:
    id: int
    student_id: int
    workflow_step: WorkflowStep
    teacher_id: Optional[int] = None
    status: TicketStatus = TicketStatus.PENDING
    sabq_entries: list[SabqEntry] = field(default_factory=list)
    recitation_range: Optional[RecitationRange] = None
    homework_range: Optional[RecitationRange] = None
    mistakes: list[MistakeRecord] = field(default_factory=list)
    assignment_id: Optional[int] = None
    homework_assigned: Optional[int] = None
    notes: str = ""
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def collected_mistakes(self) -> list[MistakeRecord]:
        """Mistakes from the sabq entries, or the flat list when there are none.

        A sabq entry's mistake without a surah or ayah is located at the start
        of that entry's range, so mistakes from different entries stay apart.
        """
        if not self.sabq_entries:
            return list(self.mistakes)
        result = []
        for entry in self.sabq_entries:
            rng = entry.recitation_range
            for m in entry.mistakes:
                if rng is not None and (m.surah is None or m.ayah is None):
                    m = replace(
                        m,
                        surah=m.surah if m.surah is not None else rng.surah,
                        ayah=m.ayah if m.ayah is not None else rng.ayah_from,
                    )
                result.append(m)
        return result


@dataclass
class Timeline:
    first_marked_at: Optional[datetime] = None
    last_marked_at: Optional[datetime] = None
    repeat_count: int = 1
    resolved: bool = False
    resolved_at: Optional[datetime] = None


@dataclass
class LedgerEntry:
    id: str
    type: str
    category: str
    workflow_step: WorkflowStep
    page: Optional[int] = None
    surah: Optional[int] = None
    ayah: Optional[int] = None
    word_index: Optional[int] = None
    letter_index: Optional[int] = None
    position: Optional[Position] = None
    tajweed_data: Optional[dict] = None
    note: Optional[str] = None
    audio_url: Optional[str] = None
    timeline: Timeline = field(default_factory=Timeline)
    ticket_id: Optional[int] = None
    marked_by: Optional[int] = None
    marked_by_name: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass
class ClassworkEntry:
    type: WorkflowStep
    assignment_range: str
    details: str = ""
    surah_number: Optional[int] = None
    surah_name: str = ""
    from_ayah: Optional[int] = None
    to_ayah: Optional[int] = None
    end_surah_number: Optional[int] = None
    mistake_count: int = 0
    source_entry_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class HomeworkItem:
    type: WorkflowStep
    range: dict
    source: dict
    content: str = ""


@dataclass
class MushafMistake:
    id: str
    type: str
    page: int
    surah: int
    ayah: int
    word_index: int
    position: Position
    workflow_step: WorkflowStep
    note: str = ""
    audio_url: str = ""
    marked_by: Optional[int] = None
    marked_by_name: str = ""
    timestamp: Optional[datetime] = None


@dataclass
class Assignment:
    id: Optional[int]
    student_id: int
    assigned_by: int
    student_name: str = ""
    assigned_by_name: str = ""
    assigned_by_role: str = "teacher"
    from_ticket_id: Optional[int] = None
    classwork: dict = field(default_factory=lambda: {step.value: [] for step in WorkflowStep})
    homework_enabled: bool = False
    homework_items: list[HomeworkItem] = field(default_factory=list)
    mushaf_mistakes: list[MushafMistake] = field(default_factory=list)
    comment: str = ""
    status: AssignmentStatus = AssignmentStatus.ACTIVE
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass
class Notification:
    user_id: int
    title: str
    message: str
    related_entity_id: int
    type: str = "recitation_review"
    related_entity_type: str = "Ticket"
    created_at: Optional[datetime] = None
    read: bool = False
