from recitation_review.models import RecitationRange
from recitation_review.ranges import is_well_formed, resolve_range


def test_single_surah_range():
    r = resolve_range(RecitationRange(surah=2, surah_name="Al-Baqarah", ayah_from=1, ayah_to=5))
    assert r.display_text == "Surah Al-Baqarah, Ayah 1-5"
    assert (r.from_surah, r.from_ayah, r.to_surah, r.to_ayah) == (2, 1, 2, 5)


def test_same_end_surah_is_single_surah():
    r = resolve_range(RecitationRange(surah=2, surah_name="Al-Baqarah", ayah_from=6, ayah_to=10, end_surah=2))
    assert r.display_text == "Surah Al-Baqarah, Ayah 6-10"


def test_cross_surah_range():
    r = resolve_range(RecitationRange(
        surah=112, surah_name="Al-Ikhlas", ayah_from=1,
        end_surah=114, end_surah_name="An-Nas", ayah_to=6,
    ))
    assert r.display_text == "Surah Al-Ikhlas, Ayah 1 → Surah An-Nas, Ayah 6"
    assert r.to_surah == 114


def test_missing_name_falls_back_to_number():
    r = resolve_range(RecitationRange(surah=36, ayah_from=1, ayah_to=12))
    assert r.display_text == "Surah 36, Ayah 1-12"


def test_cross_surah_missing_end_name():
    r = resolve_range(RecitationRange(surah=1, surah_name="Al-Fatihah", ayah_from=1, end_surah=2, ayah_to=5))
    assert r.display_text == "Surah Al-Fatihah, Ayah 1 → Surah 2, Ayah 5"


def test_missing_fields_use_placeholders():
    r = resolve_range(RecitationRange())
    assert r.display_text == "Surah N/A, Ayah N/A-N/A"
    assert r.from_surah is None


def test_none_range_does_not_raise():
    r = resolve_range(None)
    assert r.display_text == "Surah N/A, Ayah N/A-N/A"
    assert r.to_ayah is None


def test_missing_end_ayah_defaults_to_start():
    r = resolve_range(RecitationRange(surah=2, surah_name="Al-Baqarah", ayah_from=255))
    assert r.display_text == "Surah Al-Baqarah, Ayah 255-255"
    assert r.to_ayah == 255


def test_blank_name_treated_as_missing():
    r = resolve_range(RecitationRange(surah=18, surah_name="  ", ayah_from=1, ayah_to=10))
    assert r.display_text == "Surah 18, Ayah 1-10"


def test_is_well_formed():
    assert is_well_formed(RecitationRange(surah=2, ayah_from=1, ayah_to=5))
    assert not is_well_formed(RecitationRange(surah=2, ayah_from=6, ayah_to=5))
    assert is_well_formed(RecitationRange(surah=112, ayah_from=1, ayah_to=6, end_surah=114))
    assert not is_well_formed(RecitationRange(surah=114, ayah_from=1, ayah_to=6, end_surah=112))
    assert not is_well_formed(RecitationRange(surah=2))
