"""Normalize recitation ranges into display text and numeric bounds."""
from dataclasses import dataclass
from typing import Optional

from recitation_review.models import RecitationRange

PLACEHOLDER = "N/A"


@dataclass
class ResolvedRange:
    display_text: str
    from_surah: Optional[int]
    from_ayah: Optional[int]
    to_surah: Optional[int]
    to_ayah: Optional[int]


def _surah_label(name: Optional[str], number: Optional[int]) -> str:
    if name and name.strip():
        return name.strip()
    if number is not None:
        return str(number)
    return PLACEHOLDER


def _ayah_label(ayah: Optional[int]) -> str:
    return PLACEHOLDER if ayah is None else str(ayah)


def resolve_range(rng: Optional[RecitationRange]) -> ResolvedRange:
    """Build display text and bounds for a range. Never raises.

    A range is cross-surah only when ``end_surah`` is set and differs from
    ``surah``; otherwise it is formatted as a single-surah span.
    """
    if rng is None:
        return ResolvedRange(f"Surah {PLACEHOLDER}, Ayah {PLACEHOLDER}-{PLACEHOLDER}", None, None, None, None)

    from_ayah = rng.ayah_from
    to_ayah = rng.ayah_to if rng.ayah_to is not None else from_ayah
    start = _surah_label(rng.surah_name, rng.surah)

    crosses = rng.end_surah is not None and rng.end_surah != rng.surah
    if crosses:
        end = _surah_label(rng.end_surah_name, rng.end_surah)
        text = f"Surah {start}, Ayah {_ayah_label(from_ayah)} → Surah {end}, Ayah {_ayah_label(to_ayah)}"
        to_surah = rng.end_surah
    else:
        text = f"Surah {start}, Ayah {_ayah_label(from_ayah)}-{_ayah_label(to_ayah)}"
        to_surah = rng.surah
    return ResolvedRange(text, rng.surah, from_ayah, to_surah, to_ayah)


def is_well_formed(rng: RecitationRange) -> bool:
    """Check the ordering invariant of a range whose bounds are all known."""
    if rng.surah is None or rng.ayah_from is None or rng.ayah_to is None:
        return False
    if rng.end_surah is None or rng.end_surah == rng.surah:
        return rng.ayah_from <= rng.ayah_to
    return rng.surah < rng.end_surah
