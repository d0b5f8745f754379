"""
Learning Engine Configuration - Central Constants Registry.

All thresholds used by the practice engine are defined here with provenance.
No magic numbers in classifier, guard, difficulty or retrieval code.

Each constant includes:
- value: The actual constant value
- source: Where the value comes from
- notes: Rationale and context
- validated: Whether the value has been checked against its source
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SourcedValue:
    """
    A constant value with documented provenance.

    All engine constants must use this type to enforce documentation.
    """

    value: Any
    source: str
    notes: str = ""
    validated: bool = False

    def __post_init__(self):
        if not self.source or self.source.strip() == "":
            raise ValueError(f"SourcedValue must have non-empty source. Got: {self.source}")


# =============================================================================
# Difficulty Engine
# =============================================================================

DIFFICULTY_CHECK_WINDOW = SourcedValue(
    value=5,
    source="Adaptive practice v1 lightweight check",
    notes="Last N answers considered when deciding to adjust after each answer.",
    validated=True,
)

DIFFICULTY_CHECK_MIN_ANSWERS = SourcedValue(
    value=3,
    source="Adaptive practice v1 lightweight check",
    notes="No adjustment decision before this many answers exist in the window.",
    validated=True,
)

DIFFICULTY_RECOMMEND_WINDOW = SourcedValue(
    value=10,
    source="Adaptive practice v1 recommendation",
    notes="Last N answers used for the next-question difficulty recommendation. "
    "Also the denominator of recommendation confidence.",
    validated=True,
)

DIFFICULTY_RECOMMEND_MIN_ANSWERS = SourcedValue(
    value=5,
    source="Adaptive practice v1 recommendation",
    notes="Recommendation holds the current label until this many answers exist.",
    validated=True,
)

# Lightweight check cut points (percent accuracy)
CHECK_ESCALATE_ANY = SourcedValue(
    value=90.0,
    source="Adaptive practice v1 decision table",
    notes="accuracy >= 90 escalates one step unless already hard.",
    validated=True,
)
CHECK_ESCALATE_FROM_EASY = SourcedValue(
    value=70.0,
    source="Adaptive practice v1 decision table",
    notes="70 <= accuracy < 90 escalates easy to medium.",
    validated=True,
)
CHECK_DEESCALATE_ANY = SourcedValue(
    value=40.0,
    source="Adaptive practice v1 decision table",
    notes="accuracy < 40 de-escalates one step unless already easy.",
    validated=True,
)
CHECK_DEESCALATE_FROM_MEDIUM = SourcedValue(
    value=50.0,
    source="Adaptive practice v1 decision table",
    notes="accuracy < 50 de-escalates medium to easy.",
    validated=True,
)

# Recommendation cut points (percent accuracy)
RECOMMEND_HARD_ACCURACY = SourcedValue(
    value=85.0,
    source="Adaptive practice v1 recommendation",
    notes="9/10 correct (90%) recommends hard; 8/10 does not.",
    validated=True,
)
RECOMMEND_MEDIUM_ACCURACY = SourcedValue(
    value=60.0,
    source="Adaptive practice v1 recommendation",
    validated=True,
)

TREND_DELTA_POINTS = SourcedValue(
    value=10.0,
    source="Adaptive practice v1 trend",
    notes="Recent half vs older half of the recommendation window; a difference "
    "beyond +-10 accuracy points is improving/declining.",
    validated=True,
)

# Numeric level scale. Level is authoritative, label is derived.
LEVEL_MIN = SourcedValue(value=1, source="Difficulty level scale", validated=True)
LEVEL_MAX = SourcedValue(value=10, source="Difficulty level scale", validated=True)
LEVEL_EASY_MAX = SourcedValue(
    value=3, source="Difficulty level scale", notes="level <= 3 is easy", validated=True
)
LEVEL_MEDIUM_MAX = SourcedValue(
    value=7, source="Difficulty level scale", notes="4..7 is medium, >= 8 hard", validated=True
)
LABEL_LEVELS = SourcedValue(
    value={"easy": 2, "medium": 5, "hard": 8},
    source="Difficulty level scale",
    notes="Representative level written when a label transition happens.",
    validated=True,
)

# =============================================================================
# Duplicate / Similarity Guard
# =============================================================================

FINGERPRINT_MIN_TOKEN_LENGTH = SourcedValue(
    value=3,
    source="Adaptive practice v1 session history",
    notes="Hebrew-script tokens shorter than this are ignored.",
    validated=True,
)
FINGERPRINT_MAX_KEYWORDS = SourcedValue(
    value=8,
    source="Adaptive practice v1 session history",
    notes="First N qualifying tokens form the keyword set.",
    validated=True,
)
SIMILARITY_NUMBER_OVERLAP = SourcedValue(
    value=0.5,
    source="Adaptive practice v1 session history",
    notes="Strictly greater than; both ratios must exceed their threshold.",
    validated=True,
)
SIMILARITY_KEYWORD_OVERLAP = SourcedValue(
    value=0.5,
    source="Adaptive practice v1 session history",
    validated=True,
)
AVOID_PROMPT_RECENT = SourcedValue(
    value=3,
    source="Adaptive practice v1 session history",
    notes="Session entries listed in the avoid block sent to generation.",
    validated=True,
)
AVOID_PROMPT_PREVIEW_CHARS = SourcedValue(
    value=80,
    source="Adaptive practice v1 session history",
    validated=True,
)
AVOID_PROMPT_HISTORY_LIMIT = SourcedValue(
    value=10,
    source="Adaptive practice v1 historical tier",
    notes="Historical texts appended to the avoid block after session entries.",
    validated=True,
)

# =============================================================================
# Content Classifier
# =============================================================================

CLASSIFIER_DEFAULT_GRADE = SourcedValue(
    value=8, source="Adaptive practice v1 classifier", validated=True
)
CLASSIFIER_DEFAULT_TOPIC = SourcedValue(
    value="general", source="Adaptive practice v1 classifier", validated=True
)
CLASSIFIER_SUBTOPIC_WEIGHT = SourcedValue(
    value=2,
    source="Adaptive practice v1 classifier",
    notes="score = topic keyword hits + 2 x subtopic keyword hits",
    validated=True,
)
CLASSIFIER_MAX_COMPLEXITY_POINTS = SourcedValue(
    value=2,
    source="Adaptive practice v1 classifier",
    notes="+1 per complexity indicator, counted up to this many.",
    validated=True,
)
CLASSIFIER_LENGTH_THRESHOLDS = SourcedValue(
    value=(200, 400),
    source="Adaptive practice v1 classifier",
    notes="+1 for text longer than each threshold (characters).",
    validated=True,
)
CLASSIFIER_HARD_SCORE = SourcedValue(
    value=7, source="Adaptive practice v1 classifier", validated=True
)
CLASSIFIER_MEDIUM_SCORE = SourcedValue(
    value=4, source="Adaptive practice v1 classifier", validated=True
)

# =============================================================================
# Question Store / Retrieval
# =============================================================================

QUALITY_BASE = SourcedValue(value=50.0, source="Question store quality formula", validated=True)
QUALITY_MIN = SourcedValue(value=30.0, source="Question store quality formula", validated=True)
QUALITY_MAX = SourcedValue(value=100.0, source="Question store quality formula", validated=True)
QUALITY_SUCCESS_MIN_USAGE = SourcedValue(
    value=5,
    source="Question store quality formula",
    notes="Success rate contributes (success - 50) / 2 only after this many uses.",
    validated=True,
)
QUALITY_USAGE_BONUS = SourcedValue(
    value=((20, 20.0), (10, 10.0), (5, 5.0)),
    source="Question store quality formula",
    notes="(min usage, bonus) pairs, first match wins.",
    validated=True,
)
QUALITY_INITIAL = SourcedValue(
    value={"curated": 75.0, "ai_generated": 70.0, "template": 50.0},
    source="Question store quality formula",
    validated=True,
)
QUALITY_TIERS = SourcedValue(
    value=((80.0, 3), (60.0, 2)),
    source="Question store ranking",
    notes="(min quality, tier) pairs; anything below is tier 1.",
    validated=True,
)
RETRIEVAL_CANDIDATE_LIMIT = SourcedValue(
    value=5,
    source="Question store ranking",
    notes="Ranked candidates fetched per tier before the similarity filter.",
    validated=True,
)
CURATED_MIN_GRADE = SourcedValue(
    value=7,
    source="Curated bank grade window",
    notes="Curated search spans max(7, grade - 1) .. grade.",
    validated=True,
)
ANSWER_NUMERIC_TOLERANCE = SourcedValue(
    value=1e-6,
    source="Answer checking",
    validated=True,
)
