"""Build classwork and homework assignments from an approved ticket."""
import logging
from datetime import datetime
from typing import Optional

from recitation_review.models import (
    Assignment, AssignmentStatus, ClassworkEntry, HomeworkItem, MistakeRecord,
    MushafMistake, Position, RecitationRange, Ticket, User, WorkflowStep,
)
from recitation_review.ranges import is_well_formed, resolve_range

logger = logging.getLogger(__name__)

# One classwork list per workflow step.
CLASSWORK_KEYS = {
    WorkflowStep.SABQ: "sabq",
    WorkflowStep.SABQI: "sabqi",
    WorkflowStep.MANZIL: "manzil",
}

ELEVATED_ROLES = ("admin", "super_admin")


def classwork_key(step: WorkflowStep) -> str:
    return CLASSWORK_KEYS[step]


def _range_from_mistake(mistake: Optional[MistakeRecord]) -> Optional[RecitationRange]:
    if mistake is None or (mistake.surah is None and mistake.ayah is None):
        return None
    return RecitationRange(surah=mistake.surah, ayah_from=mistake.ayah, ayah_to=mistake.ayah)


def _classwork_entry(
    step: WorkflowStep,
    rng: Optional[RecitationRange],
    details: str,
    mistake_count: int,
    source_entry_id: Optional[str],
    now: datetime,
    prefix: str = "",
) -> ClassworkEntry:
    if rng is not None and not is_well_formed(rng):
        logger.warning("Recitation range %r is incomplete or out of order", rng)
    resolved = resolve_range(rng)
    return ClassworkEntry(
        type=step,
        assignment_range=prefix + resolved.display_text,
        details=details,
        surah_number=resolved.from_surah,
        surah_name=(rng.surah_name if rng and rng.surah_name else ""),
        from_ayah=resolved.from_ayah,
        to_ayah=resolved.to_ayah,
        end_surah_number=resolved.to_surah,
        mistake_count=mistake_count,
        source_entry_id=source_entry_id,
        created_at=now,
    )


def first_available_range(ticket: Ticket) -> Optional[RecitationRange]:
    """Homework range, then the first sabq entry, the ticket range, the first mistake."""
    if ticket.homework_range is not None:
        return ticket.homework_range
    for entry in ticket.sabq_entries:
        if entry.recitation_range is not None:
            return entry.recitation_range
    if ticket.recitation_range is not None:
        return ticket.recitation_range
    mistakes = ticket.collected_mistakes()
    return _range_from_mistake(mistakes[0] if mistakes else None)


def homework_range_dict(rng: Optional[RecitationRange]) -> dict:
    rng = rng or RecitationRange()
    from_surah = rng.surah or 1
    from_ayah = rng.ayah_from or 1
    return {
        "mode": "surah_ayah",
        "from": {"surah": from_surah, "surah_name": rng.surah_name or "", "ayah": from_ayah},
        "to": {
            "surah": rng.end_surah or from_surah,
            "surah_name": rng.end_surah_name or rng.surah_name or "",
            "ayah": rng.ayah_to or from_ayah,
        },
    }


def build_classwork(ticket: Ticket, review_notes: str, now: datetime) -> dict:
    classwork = {key: [] for key in CLASSWORK_KEYS.values()}
    if ticket.sabq_entries:
        for entry in ticket.sabq_entries:
            classwork[classwork_key(WorkflowStep.SABQ)].append(_classwork_entry(
                WorkflowStep.SABQ,
                entry.recitation_range,
                entry.comment or "",
                len(entry.mistakes),
                entry.id,
                now,
            ))
    else:
        rng = ticket.recitation_range or _range_from_mistake(ticket.mistakes[0] if ticket.mistakes else None)
        classwork[classwork_key(ticket.workflow_step)].append(_classwork_entry(
            ticket.workflow_step, rng, review_notes, len(ticket.mistakes), None, now,
        ))

    if ticket.homework_range is not None:
        classwork[classwork_key(ticket.workflow_step)].append(_classwork_entry(
            ticket.workflow_step, ticket.homework_range, review_notes, 0, None, now, prefix="Homework: ",
        ))
    return classwork


def build_mushaf_mistakes(ticket: Ticket, reviewer: User, now: datetime) -> list[MushafMistake]:
    fallback = resolve_range(first_available_range(ticket))
    result = []
    for index, mistake in enumerate(ticket.collected_mistakes()):
        result.append(MushafMistake(
            id=f"mistake-{ticket.id}-{index}",
            type=mistake.type or "other",
            page=mistake.page or 1,
            surah=mistake.surah or fallback.from_surah or 1,
            ayah=mistake.ayah or fallback.from_ayah or 1,
            word_index=mistake.word_index or 0,
            position=mistake.position or Position(0, 0),
            workflow_step=ticket.workflow_step,
            note=mistake.note or "",
            audio_url=mistake.audio_url or "",
            marked_by=reviewer.id,
            marked_by_name=reviewer.full_name,
            timestamp=mistake.timestamp or now,
        ))
    return result


def build_assignment(
    ticket: Ticket,
    reviewer: User,
    student_name: str = "",
    review_notes: Optional[str] = None,
    homework_data: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> Assignment:
    """Synthesize the assignment for an approved ticket.

    Missing numbers and names fall back to placeholders so that a ticket that
    could be loaded always yields an assignment.
    """
    now = now or datetime.now()
    review_notes = review_notes or ""

    homework_items = []
    if homework_data:
        homework_items.append(HomeworkItem(
            type=ticket.workflow_step,
            range=homework_range_dict(first_available_range(ticket)),
            source={"suggested_from": "ticket", "ticket_ids": [ticket.id]},
            content=homework_data.get("instructions") or homework_data.get("description") or "",
        ))

    return Assignment(
        id=None,
        student_id=ticket.student_id,
        student_name=student_name,
        assigned_by=reviewer.id,
        assigned_by_name=reviewer.full_name,
        assigned_by_role=reviewer.role if reviewer.role in ELEVATED_ROLES else "teacher",
        from_ticket_id=ticket.id,
        classwork=build_classwork(ticket, review_notes, now),
        homework_enabled=bool(homework_items),
        homework_items=homework_items,
        mushaf_mistakes=build_mushaf_mistakes(ticket, reviewer, now),
        comment=review_notes,
        status=AssignmentStatus.ACTIVE,
        created_at=now,
    )
