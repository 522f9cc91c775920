"""Hebrew phrase lexicon used by the scoring engine.

Pure data. Bump ``LEXICON_VERSION`` whenever an entry changes so stored scores
can be traced back to the phrase set that produced them.
"""

LEXICON_VERSION = "1.0"

CATEGORIES = ("urgency", "budget", "interest", "engagement")

# Literal phrases per category, split into salience tiers.
PHRASES: dict[str, dict[str, tuple[str, ...]]] = {
    "urgency": {
        "high": (
            "אני צריך לעבור עד החודש הבא",
            "זה דחוף מאוד",
            "השכירות שלי נגמרת בעוד חודש",
            "האישה דוחפת לקנות",
            "יש לי דדליין",
            "יש לי לחץ זמן",
            "המשפחה דוחפת",
            "צריך מהר",
            "זמן קצר",
            "דחוף",
            "דחיפות",
            "מהר",
        ),
        "medium": (
            "אני רוצה לעבור",
            "השכירות נגמרת",
            "אני מחפש",
        ),
    },
    "budget": {
        "high": (
            "המשכנתא שלי מאושרת",
            "משכנתא מאושרת",
            "התקציב שלי הוא",
            "כסף מזומן",
            "הון עצמי",
            "אלפי שקלים",
            "אלף שקל",
            "משכנתא",
            "תקציב",
        ),
        "medium": (
            "אני יכול לשלם",
            "יש לי כסף",
            "תקציב של",
            "יש לי",
        ),
    },
    "interest": {
        "high": (
            "מתי אפשר לראות את הנכס",
            "זה בדיוק מה שחיפשתי",
            "אני אוהב את המיקום",
            "מה השטח המדויק",
            "איך נראה הנוף",
            "אני רוצה להמשיך",
            "מה השלב הבא",
            "מתי אפשר לראות",
            "זה נשמע טוב",
            "אני מעוניין",
            "אני מעוניינת",
            "איך נראה",
            "מה השטח",
            "אני אוהב",
            "זה בדיוק",
        ),
        "medium": (
            "אני רוצה לראות",
            "מתי אפשר",
            "איך",
            "מה",
        ),
    },
    "engagement": {
        "high": (
            "תשלח לי פרטים נוספים",
            "אני רוצה לשמוע עוד",
            "אני רוצה לדעת יותר",
            "תוכל לשלוח לי",
            "תוכל לספר לי",
            "תוכל להסביר",
            "אני רוצה לשמוע",
            "אני רוצה לדעת",
            "תשלח לי",
        ),
        "medium": (
            "אני רוצה",
            "תוכל",
            "אפשר",
        ),
    },
}

# Regex patterns per category. The matched text itself becomes the key phrase.
PATTERNS: dict[str, tuple[str, ...]] = {
    "urgency": (
        r"עד סוף ה(?:חודש|שבוע|שנה)",
        r"תוך \d+ (?:ימים|שבועות|חודשים)",
    ),
    "budget": (
        r"\d+ ?(?:מיליון|אלף|אלפי) ?(?:שקל|שקלים)",
        r"תקציב של \d+",
        r"עד \d+",
    ),
    "interest": (
        r"(?:נכס|דירה|בית|פנטהאוז) ב(?:תל אביב|ירושלים|חיפה|רמת גן|גבעתיים|"
        r"הרצליה|רעננה|כפר סבא|פתח תקווה|ראשון לציון|חולון|בת ים|נתניה|"
        r"באר שבע|אשדוד|מודיעין)",
        r"\d+ חדרים",
    ),
    "engagement": (),
}

# Phrases signalling customer resistance.
OBJECTION_PHRASES: tuple[str, ...] = (
    "אני צריך לחשוב על זה",
    "יש לי עוד אפשרויות",
    "אני אתקשר אליך",
    "אני אחזור אליך",
    "אני צריך לחשוב",
    "זה יקר מדי",
    "אני לא בטוח",
    "אני אחזור",
    "יקר מדי",
    "לא בטוח",
    "זה יקר",
)

# Labels used in generated notes.
CATEGORY_LABELS: dict[str, str] = {
    "urgency": "דחיפות",
    "budget": "תקציב",
    "interest": "עניין בנכס",
    "engagement": "מעורבות",
}
