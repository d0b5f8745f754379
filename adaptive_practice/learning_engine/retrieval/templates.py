"""
Deterministic template questions.

Local fallback when the generation service is unavailable or returns unusable
output. A template is picked by topic and seeded from the request, so the same
(student, topic, difficulty, exposure count) always yields the same question.
"""

import hashlib
import random
from dataclasses import dataclass, field
from typing import Callable, Optional

from adaptive_practice.learning_engine.constants import Difficulty
from adaptive_practice.learning_engine.retrieval.topics import resolve_topic_labels

# Operand ranges per difficulty
RANGES: dict[str, tuple[int, int]] = {
    Difficulty.EASY.value: (2, 12),
    Difficulty.MEDIUM.value: (5, 40),
    Difficulty.HARD.value: (12, 120),
}


@dataclass
class TemplateQuestion:
    question_text: str
    correct_answer: str
    topic: str
    subtopic: Optional[str] = None
    explanation: str = ""
    hints: list[str] = field(default_factory=list)
    solution_steps: list[str] = field(default_factory=list)
    template: str = ""


def create_seeded_rng(seed: str) -> random.Random:
    """
    Create a seeded random number generator.

    Args:
        seed: Seed string (hashed to a deterministic integer)

    Returns:
        Seeded Random instance
    """
    seed_bytes = hashlib.sha256(seed.encode()).digest()
    return random.Random(int.from_bytes(seed_bytes[:8], byteorder="big"))


def _operand(rng: random.Random, difficulty: str) -> int:
    low, high = RANGES.get(difficulty, RANGES[Difficulty.MEDIUM.value])
    return rng.randint(low, high)


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}".rstrip("0").rstrip(".")


def percent_of(rng: random.Random, difficulty: str) -> TemplateQuestion:
    percents = {
        Difficulty.EASY.value: (10, 20, 25, 50),
        Difficulty.MEDIUM.value: (5, 15, 30, 40, 60, 75),
        Difficulty.HARD.value: (12, 35, 45, 65, 85),
    }[difficulty]
    percent = rng.choice(percents)
    base = _operand(rng, difficulty) * 20
    answer = base * percent / 100
    return TemplateQuestion(
        question_text=f"כמה זה {percent}% מתוך {base}?",
        correct_answer=_fmt(answer),
        topic="אחוזים",
        subtopic="חישובי אחוזים בסיסיים",
        explanation=f"{percent}% מתוך {base} הם {base} כפול {percent} חלקי 100.",
        hints=["אחוז הוא חלק ממאה", f"חשבו קודם 1% מתוך {base}"],
        solution_steps=[f"1% מתוך {base} = {_fmt(base / 100)}", f"{percent} × {_fmt(base / 100)} = {_fmt(answer)}"],
        template="percent_of",
    )


def linear_equation(rng: random.Random, difficulty: str) -> TemplateQuestion:
    x = _operand(rng, difficulty)
    if difficulty == Difficulty.EASY.value:
        a = _operand(rng, difficulty)
        text = f"פתרו את המשוואה: x + {a} = {x + a}"
        steps = [f"x = {x + a} - {a}", f"x = {x}"]
    else:
        k = rng.randint(2, 9)
        a = _operand(rng, difficulty)
        text = f"פתרו את המשוואה: {k}x + {a} = {k * x + a}"
        steps = [f"{k}x = {k * x + a} - {a} = {k * x}", f"x = {k * x} / {k} = {x}"]
    return TemplateQuestion(
        question_text=text,
        correct_answer=f"x = {x}",
        topic="אלגברה",
        subtopic="משוואות לינאריות",
        explanation="מבודדים את x על ידי פעולות הפוכות בשני האגפים.",
        hints=["העבירו את המספר החופשי לאגף השני", "חלקו במקדם של x"],
        solution_steps=steps,
        template="linear_equation",
    )


def triangle_area(rng: random.Random, difficulty: str) -> TemplateQuestion:
    base = _operand(rng, difficulty) * 2
    height = _operand(rng, difficulty)
    area = base * height / 2
    return TemplateQuestion(
        question_text=f'במשולש אורך הבסיס {base} ס"מ והגובה לבסיס {height} ס"מ. מהו שטח המשולש?',
        correct_answer=_fmt(area),
        topic="גיאומטריה",
        subtopic="שטח משולש",
        explanation="שטח משולש הוא בסיס כפול גובה חלקי 2.",
        hints=["שטח משולש = (בסיס × גובה) / 2"],
        solution_steps=[f"{base} × {height} = {base * height}", f"{base * height} / 2 = {_fmt(area)}"],
        template="triangle_area",
    )


PYTHAGOREAN_TRIPLES = {
    Difficulty.EASY.value: ((3, 4, 5), (6, 8, 10)),
    Difficulty.MEDIUM.value: ((5, 12, 13), (8, 15, 17), (9, 12, 15)),
    Difficulty.HARD.value: ((7, 24, 25), (20, 21, 29), (12, 35, 37)),
}


def pythagoras(rng: random.Random, difficulty: str) -> TemplateQuestion:
    a, b, c = rng.choice(PYTHAGOREAN_TRIPLES[difficulty])
    scale = 1 if difficulty == Difficulty.EASY.value else rng.randint(1, 3)
    a, b, c = a * scale, b * scale, c * scale
    return TemplateQuestion(
        question_text=f'במשולש ישר זווית אורכי הניצבים הם {a} ס"מ ו-{b} ס"מ. מהו אורך היתר?',
        correct_answer=str(c),
        topic="גיאומטריה",
        subtopic="משפט פיתגורס",
        explanation="לפי משפט פיתגורס, ריבוע היתר שווה לסכום ריבועי הניצבים.",
        hints=["a² + b² = c²"],
        solution_steps=[f"{a}² + {b}² = {a * a + b * b}", f"c = √{a * a + b * b} = {c}"],
        template="pythagoras",
    )


def arithmetic_sequence(rng: random.Random, difficulty: str) -> TemplateQuestion:
    first = _operand(rng, difficulty)
    d = rng.randint(2, 9)
    n = {Difficulty.EASY.value: 5, Difficulty.MEDIUM.value: 12, Difficulty.HARD.value: 30}[difficulty]
    nth = first + (n - 1) * d
    return TemplateQuestion(
        question_text=f"בסדרה חשבונית האיבר הראשון הוא {first} וההפרש הוא {d}. מהו האיבר ה-{n}?",
        correct_answer=str(nth),
        topic="סדרות",
        subtopic="סדרות חשבוניות",
        explanation="האיבר ה-n בסדרה חשבונית: a₁ + (n-1)d.",
        hints=["aₙ = a₁ + (n - 1)·d"],
        solution_steps=[f"a{n} = {first} + ({n} - 1)·{d}", f"a{n} = {nth}"],
        template="arithmetic_sequence",
    )


def polynomial_derivative(rng: random.Random, difficulty: str) -> TemplateQuestion:
    a = rng.randint(1, 5)
    b = rng.randint(1, 9)
    x0 = rng.randint(1, 4 if difficulty == Difficulty.EASY.value else 6)
    if difficulty == Difficulty.HARD.value:
        c = rng.randint(1, 3)
        text = f"נתונה הפונקציה f(x) = {c}x³ + {a}x² + {b}x. חשבו את הנגזרת בנקודה x = {x0}."
        value = 3 * c * x0 * x0 + 2 * a * x0 + b
        steps = [f"f'(x) = {3 * c}x² + {2 * a}x + {b}", f"f'({x0}) = {value}"]
    else:
        text = f"נתונה הפונקציה f(x) = {a}x² + {b}x. חשבו את הנגזרת בנקודה x = {x0}."
        value = 2 * a * x0 + b
        steps = [f"f'(x) = {2 * a}x + {b}", f"f'({x0}) = {value}"]
    return TemplateQuestion(
        question_text=text,
        correct_answer=str(value),
        topic="חשבון דיפרנציאלי",
        subtopic="נגזרות של פולינומים",
        explanation="גוזרים כל איבר לפי כלל החזקה ומציבים את הנקודה.",
        hints=["(xⁿ)' = n·xⁿ⁻¹"],
        solution_steps=steps,
        template="polynomial_derivative",
    )


def probability(rng: random.Random, difficulty: str) -> TemplateQuestion:
    red = _operand(rng, difficulty)
    blue = _operand(rng, difficulty)
    total = red + blue
    answer = red / total
    return TemplateQuestion(
        question_text=f"בכד יש {red} כדורים אדומים ו-{blue} כדורים כחולים. מוציאים כדור אחד באקראי. מה ההסתברות שהכדור אדום? (ענו בשבר עשרוני)",
        correct_answer=f"{answer:.4f}".rstrip("0").rstrip("."),
        topic="סטטיסטיקה והסתברות",
        subtopic="הסתברות בסיסית",
        explanation="הסתברות = מספר התוצאות הרצויות חלקי מספר התוצאות האפשריות.",
        hints=[f"כמה כדורים יש בסך הכל? ({total})"],
        solution_steps=[f"P = {red} / {total}", f"P ≈ {answer:.4f}"],
        template="probability",
    )


TemplateFn = Callable[[random.Random, str], TemplateQuestion]

# Lookup key (slug or Hebrew label) -> template
TEMPLATES: dict[str, TemplateFn] = {
    "percentages": percent_of,
    "proportions-ratios": percent_of,
    "אחוזים": percent_of,
    "חישובי אחוזים בסיסיים": percent_of,
    "linear-equations": linear_equation,
    "multi-step-equations": linear_equation,
    "אלגברה": linear_equation,
    "משוואות": linear_equation,
    "משוואות לינאריות": linear_equation,
    "triangle-area": triangle_area,
    "שטח משולש": triangle_area,
    "גיאומטריה": triangle_area,
    "גאומטריה": triangle_area,
    "pythagorean-theorem": pythagoras,
    "משפט פיתגורס": pythagoras,
    "arithmetic-sequences": arithmetic_sequence,
    "סדרות": arithmetic_sequence,
    "סדרות חשבוניות": arithmetic_sequence,
    "derivatives": polynomial_derivative,
    "חשבון דיפרנציאלי": polynomial_derivative,
    "נגזרות של פולינומים": polynomial_derivative,
    "probability": probability,
    "הסתברות": probability,
    "הסתברות בסיסית": probability,
    "סטטיסטיקה והסתברות": probability,
}


def find_template(topic: Optional[str], subtopic: Optional[str] = None) -> Optional[TemplateFn]:
    """Most specific template for the topic; subtopic first, then topic, then translated labels."""
    for key in (subtopic, topic):
        if key and key in TEMPLATES:
            return TEMPLATES[key]
    for label in resolve_topic_labels(topic, subtopic):
        if label in TEMPLATES:
            return TEMPLATES[label]
    return None


def build_template_question(
    topic: Optional[str],
    difficulty: str,
    seed: str,
    subtopic: Optional[str] = None,
) -> Optional[TemplateQuestion]:
    """Deterministic template question, or None when no template covers the topic."""
    template = find_template(topic, subtopic)
    if template is None:
        return None
    difficulty = Difficulty(difficulty).value
    return template(create_seeded_rng(seed), difficulty)
