"""
Keyword tables for the content classifier.

Every table is an ordered list of (label, keywords) pairs consumed by the
generic scorers in ``core``. Order matters: ranked tables are evaluated first
to last and ties keep the earlier entry. Keywords are matched as lower-cased
substrings of the question text.
"""

from dataclasses import dataclass

# Grade tiers, most advanced first. First tier with any hit wins.
GRADE_TIERS: list[tuple[int, tuple[str, ...]]] = [
    (
        12,
        (
            "נגזרת",
            "אינטגרל",
            "גבול",
            "לימיט",
            "dy/dx",
            "dx",
            "חשבון דיפרנציאלי",
            "חשבון אינטגרלי",
            "נקודות קיצון",
            "נקודות פיתול",
            "משיק לעקומה",
            "שטח בין עקומות",
            "נפח גוף סיבוב",
            "פונקציה קדומה",
            "גבול באינסוף",
            "קצב שינוי רגעי",
        ),
    ),
    (
        11,
        (
            "לוגריתם",
            "אקספוננ",
            "log",
            "ln",
            "e^",
            "טריגונומטריה",
            "sin",
            "cos",
            "tan",
            "פונקציה מעריכית",
            "חזקות שליליות",
        ),
    ),
    (
        10,
        (
            "פונקציה ריבועית",
            "פרבולה",
            "משוואה ריבועית",
            "נוסחת השורשים",
            "דיסקרימיננטה",
            "x²",
        ),
    ),
    (
        9,
        (
            "משוואות לינאריות מורכבות",
            "מערכת משוואות",
            "יחס ופרופורציה",
            "משפט פיתגורס",
        ),
    ),
]

# Unit-track tiers (grades 10-12 only), deepest first.
UNIT_TIERS: list[tuple[int, tuple[str, ...]]] = [
    (
        5,
        (
            "נגזרת של פונקציה מורכבת",
            "אינטגרל מסוים מורכב",
            "נפח גוף סיבוב",
            "שטח בין שלוש עקומות",
            "נקודות פיתול",
            "אופטימיזציה",
            "גבולות באינסוף",
            "כלל לופיטל",
            "סדרות אינסופיות",
            "טריגונומטריה הפוכה",
            "אינטגרל בחלקים",
            "אינטגרל בהצבה",
        ),
    ),
    (
        4,
        (
            "נגזרת",
            "אינטגרל",
            "גבול",
            "נקודות קיצון",
            "משיק לעקומה",
            "שטח מתחת לעקומה",
            "לוגריתם",
            "אקספוננ",
            "טריגונומטריה",
        ),
    ),
    (
        3,
        (
            "פונקציה ליניארית",
            "פונקציה ריבועית",
            "משוואה ריבועית",
            "פרבולה",
            "גרף",
            "יחס",
            "אחוזים",
        ),
    ),
]

# Unit track assumed when no unit keyword matched and no hint was supplied.
DEFAULT_UNITS_BY_GRADE: dict[int, int] = {12: 4, 11: 3}


@dataclass(frozen=True)
class TopicEntry:
    """A topic with its own keywords and an ordered subtopic table."""

    label: str
    keywords: tuple[str, ...]
    subtopics: list[tuple[str, tuple[str, ...]]]


TOPIC_TABLE: list[TopicEntry] = [
    TopicEntry(
        label="חשבון דיפרנציאלי",
        keywords=("נגזרת", "משיק", "קצב שינוי", "dy/dx", "גבול", "קיצון", "פיתול"),
        subtopics=[
            ("נגזרות של פולינומים", ("נגזרת", "x²", "x³", "פולינום", "חזקה")),
            ("נגזרות של פונקציות מורכבות", ("פונקציה מורכבת", "שרשור", "כלל השרשרת")),
            ("נגזרות של פונקציות טריגונומטריות", ("נגזרת", "sin", "cos", "tan")),
            ("נגזרות של פונקציות אקספוננציאליות", ("נגזרת", "e^", "אקספוננ")),
            ("נגזרות של פונקציות לוגריתמיות", ("נגזרת", "ln", "log", "לוגריתם")),
            ("נקודות קיצון", ("מקסימום", "מינימום", "קיצון", "נקודת קיצון")),
            ("נקודות פיתול", ("פיתול", "קעור", "קמור", "נקודת פיתול")),
            ("משיק לעקומה", ("משיק", "משוואת משיק", "ישר משיק")),
            ("גבולות בסיסיים", ("גבול", "לימיט", "שואף")),
            ("גבולות באינסוף", ("גבול באינסוף", "כאשר x שואף לאינסוף")),
            ("אופטימיזציה", ("אופטימיזציה", "מינימום", "מקסימום", "ערך קיצון")),
        ],
    ),
    TopicEntry(
        label="חשבון אינטגרלי",
        keywords=("אינטגרל", "∫", "שטח", "נפח", "פונקציה קדומה"),
        subtopics=[
            ("אינטגרל לא מסוים", ("אינטגרל לא מסוים", "פונקציה קדומה")),
            ("אינטגרל מסוים", ("אינטגרל מסוים", "חשבו את האינטגרל")),
            ("אינטגרלים בסיסיים", ("∫x", "∫cos", "∫sin", "אינטגרל בסיסי")),
            ("שטח מתחת לעקומה", ("שטח", "מתחת ל", "עקומה")),
            ("שטח בין עקומות", ("שטח בין", "שתי עקומות", "בין הפונקציות")),
            ("נפח גוף סיבוב", ("נפח", "גוף סיבוב", "מסתובב סביב")),
            ("אינטגרל בחלקים", ("אינטגרל בחלקים", "integration by parts")),
            ("אינטגרל בהצבה", ("אינטגרל בהצבה", "הצבה")),
            ("ערך ממוצע של פונקציה", ("ערך ממוצע", "ממוצע של פונקציה")),
        ],
    ),
    TopicEntry(
        label="אלגברה",
        keywords=("משוואה", "אי-שווון", "ביטוי", "פתור", "x", "y"),
        subtopics=[
            ("משוואות לינאריות", ("משוואה", "ליניארי", "x +", "x -")),
            ("משוואות ריבועיות", ("ריבועית", "x²", "דיסקרימיננטה", "נוסחת השורשים")),
            ("משוואות אקספוננציאליות", ("אקספוננ", "^x", "e^", "2^x")),
            ("משוואות לוגריתמיות", ("לוגריתם", "log", "ln")),
            ("מערכות משוואות", ("מערכת", "שתי משוואות", "שלוש משוואות")),
            ("אי-שוויונות", ("אי-שווון", ">", "<", "≥", "≤")),
            ("אי-שוויונות רציונליים", ("אי-שווון", "חלוק", "רציונלי", "שבר")),
            ("ביטויים אלגבריים", ("פשטו", "ביטוי", "סוגריים")),
            ("ערך מוחלט", ("ערך מוחלט", "|x|", "מוחלט")),
        ],
    ),
    TopicEntry(
        label="גיאומטריה",
        keywords=("משולש", "מעגל", "זווית", "שטח", "היקף", "נפח"),
        subtopics=[
            ("משפט פיתגורס", ("פיתגורס", "ישר זווית", "ניצב", "יתר")),
            ("מעגל - שטח והיקף", ("מעגל", "רדיוס", "קוטר", "היקף מעגל", "πr²")),
            ("שטח משולש", ("שטח משולש", "גובה", "בסיס")),
            ("שטח מרובעים", ("שטח מרובע", "ריבוע", "מלבן", "טרפז", "מקבילית")),
            ("נפח", ("נפח", "קובייה", "תיבה", "גליל", "קונוס")),
            ("דמיון", ("דמיון", "דומים", "יחס דמיון")),
            ("זוויות", ("זווית", "זוויות", "סכום זוויות")),
        ],
    ),
    TopicEntry(
        label="טריגונומטריה",
        keywords=("sin", "cos", "tan", "סינוס", "קוסינוס", "טנגנס"),
        subtopics=[
            ("יחסים טריגונומטריים בסיסיים", ("sin", "cos", "tan", "יחס")),
            ("משוואות טריגונומטריות", ("פתור", "sin(x)", "cos(x)", "tan(x)")),
            ("זהויות טריגונומטריות", ("זהות", "sin²", "cos²", "sin² + cos² = 1")),
            ("גרפים של פונקציות טריגונומטריות", ("גרף", "sin", "cos", "מחזור")),
            ("טריגונומטריה הפוכה", ("arcsin", "arccos", "arctan", "הפוך")),
        ],
    ),
    TopicEntry(
        label="פונקציות",
        keywords=("פונקציה", "f(x)", "גרף", "תחום", "תמונה"),
        subtopics=[
            ("פונקציות לינאריות", ("ליניארי", "y = mx + b", "שיפוע")),
            ("פונקציות ריבועיות", ("ריבועית", "פרבולה", "x²", "קודקוד")),
            ("פונקציות מעריכיות", ("מעריכית", "אקספוננ", "e^x", "2^x")),
            ("פונקציות לוגריתמיות", ("לוגריתמ", "log", "ln")),
            ("תחום הגדרה", ("תחום", "תחום הגדרה")),
            ("תמונה", ("תמונה", "טווח", "range")),
            ("גרפים", ("גרף", "ציור גרף", "תרשים")),
            ("פונקציה הופכית", ("הופכית", "inverse", "f⁻¹")),
        ],
    ),
    TopicEntry(
        label="סטטיסטיקה והסתברות",
        keywords=("ממוצע", "הסתברות", "חציון", "שכיחות", "סטטיסטיקה"),
        subtopics=[
            ("ממוצע חשבוני", ("ממוצע", "חשבוני", "average")),
            ("חציון", ("חציון", "median")),
            ("שכיחות", ("שכיחות", "mode")),
            ("הסתברות בסיסית", ("הסתברות", "סיכוי", "probability")),
            ("הסתברות מותנית", ("הסתברות מותנית", "בהינתן", "conditional")),
        ],
    ),
    TopicEntry(
        label="סדרות",
        keywords=("סדרה", "איבר", "n-ה", "סכום"),
        subtopics=[
            ("סדרות חשבוניות", ("סדרה חשבונית", "הפרש קבוע", "d")),
            ("סדרות הנדסיות", ("סדרה הנדסית", "מנה קבועה", "q")),
            ("סכום סדרה", ("סכום", "sn", "סכום איברים")),
        ],
    ),
    TopicEntry(
        label="אחוזים",
        keywords=("אחוז", "%", "הנחה", "עלייה", "ירידה"),
        subtopics=[
            ("חישובי אחוזים בסיסיים", ("כמה אחוזים", "חשב אחוז")),
            ("הנחות ותוספות", ("הנחה", "תוספת", "עלייה", "ירידה")),
            ("אחוזים מצטברים", ("מצטבר", "שינוי", "גידול")),
        ],
    ),
]

# Topic weight in the difficulty score.
TOPIC_DIFFICULTY_POINTS: list[tuple[int, tuple[str, ...]]] = [
    (2, ("חשבון דיפרנציאלי", "חשבון אינטגרלי")),
    (1, ("טריגונומטריה", "אלגברה")),
]

GRADE_DIFFICULTY_POINTS: list[tuple[int, int]] = [(12, 2), (10, 1)]

UNIT_DIFFICULTY_POINTS: dict[int, int] = {5: 3, 4: 2, 3: 1}

COMPLEXITY_INDICATORS: tuple[str, ...] = (
    "מורכב",
    "שרשור",
    "אופטימיזציה",
    "הוכח",
    "נמק",
    "הסבר",
    "בחלקים",
    "בהצבה",
    "מתקדם",
)

MULTI_STEP_MARKERS: tuple[str, ...] = ("שלב", "תחילה", "לאחר מכן")
