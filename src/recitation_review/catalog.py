"""Known mistake types and the category each one belongs to."""
from recitation_review.models import MISTAKE_CATEGORIES, WorkflowStep

MISTAKE_TYPES = {
    "memory": ("Memory Error", "memory"),
    "wrong_letter": ("Wrong Letter", "letter"),
    "missing_letter": ("Missing Letter", "letter"),
    "extra_letter": ("Extra Letter", "letter"),
    "wrong_stop": ("Wrong Stop", "stop"),
    "missing_stop": ("Missing Stop", "stop"),
    "repetition": ("Repetition (Atkees)", "atkees"),
    "madd": ("Madd (Stretch)", "tajweed"),
    "ikhfa": ("Ikhfa (Hiding)", "tajweed"),
    "tech": ("Tech", "tajweed"),
    "heavy_letter": ("Heavy Letter", "tajweed"),
    "no_rounding_lips": ("No Rounding of Lips", "tajweed"),
    "heavy_h": ("Heavy H", "tajweed"),
    "light_l": ("Light L", "tajweed"),
    "idgham": ("Idgham (Merging)", "tajweed"),
    "iqlab": ("Iqlab (Conversion)", "tajweed"),
    "qalqalah": ("Qalqalah (Echo)", "tajweed"),
    "makhraj": ("Makhraj (Articulation Point)", "tajweed"),
    "ghunna": ("Ghunna (Nasal Sound)", "tajweed"),
    "shaddah": ("Shaddah (Emphasis)", "tajweed"),
    "other": ("Other", "other"),
}

WORKFLOW_STEP_LABELS = {
    WorkflowStep.SABQ: "Sabq (new lesson)",
    WorkflowStep.SABQI: "Sabqi (recent review)",
    WorkflowStep.MANZIL: "Manzil (long-term review)",
}


def category_for(mistake_type: str, category: str | None = None) -> str:
    """Return a valid category, inferring it from the type when missing or unknown."""
    if category in MISTAKE_CATEGORIES:
        return category
    entry = MISTAKE_TYPES.get(mistake_type)
    return entry[1] if entry else "other"


def label_for(mistake_type: str) -> str:
    entry = MISTAKE_TYPES.get(mistake_type)
    return entry[0] if entry else mistake_type.replace("_", " ").title()
