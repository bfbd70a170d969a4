from decimal import Decimal
from typing import List, Sequence, Tuple

from ...domain.models import AggregatedProduct

PROMPT_SAMPLE_SIZE = 5

SALES_PROMPT = """אתה עוזר מכירות מקצועי בחנות אלקטרוניקה ישראלית מתקדמת.

שאלת הלקוח: "{query}"

מוצרים זמינים ({product_count}):
{product_lines}

חנויות מחוברות: {store_count}

תענה בעברית בצורה ידידותית ומקצועית:
1. הסבר מה מצאת ממספר החנויות
2. המלץ על המוצרים הטובים ביותר עם יתרונות
3. תן טיפים לבחירה חכמה והשוואת מחירים
4. עודד לרכישה עם דגש על שירות והבדלי מחיר

תשובה מקצועית ומועילה (עד 200 מילים) המדגישה את היתרון של החיפוש הרב-חנותי."""


def build_prompt(query: str, products: Sequence[AggregatedProduct], store_count: int) -> str:
    lines = [f"• {p.title} - ₪{p.price or 'N/A'} ({p.store_name})" for p in products[:PROMPT_SAMPLE_SIZE]]
    return SALES_PROMPT.format(
        query=query,
        product_count=len(products),
        product_lines="\n".join(lines) or "(אין מוצרים)",
        store_count=max(1, int(store_count or 0)),
    )


# (query substrings, template); first matching row wins, the last row is the default.
DEMO_TEMPLATES: List[Tuple[Tuple[str, ...], str]] = [
    (
        ("לפטופ", "laptop"),
        "מצאתי עבורך {count} אפשרויות מעניינות ללפטופ! המחיר נע בין ₪{min_price} ל-₪{max_price}. "
        "המלצתי: בדוק את האפשרות הזולה ביותר תחילה - לפעמים זה בדיוק מה שאתה צריך!",
    ),
    (
        ("טלפון", "phone", "סמארטפון"),
        "יש לנו {count} סמארטפונים זמינים! המחירים משתנים בהתאם לדגם והתכונות. "
        "המלצתי: תבדוק את המפרט הטכני של כל דגם כדי לוודא שהוא מתאים לצרכים שלך.",
    ),
    (
        ("ילד", "children", "בייבי"),
        "מוצרי ילדים? מצאתי {count} פריטים מ-{stores} חנויות שונות. "
        "חשוב לבדוק גיל מומלץ ותקני בטיחות. המחירים נראים הוגנים!",
    ),
    (
        ("גיימינג", "gaming", "אוזני"),
        "לגיימרים יש לנו {count} מוצרים מעולים! בין אם זה לפטופ גיימינג או אוזניות, "
        "המלצתי לבדוק ביקורות של משתמשים. המחיר הממוצע נראה תחרותי.",
    ),
]

DEFAULT_DEMO_TEMPLATE = (
    "מצאתי עבורך {count} מוצרים מ-{stores} חנויות! יש לי כמה המלצות: "
    "1️⃣ השווה מחירים 2️⃣ בדוק ביקורות 3️⃣ שים לב לעלויות משלוח. בהצלחה!"
)


def _fmt_price(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    return f"{value:.2f}"


def demo_response(query: str, products: Sequence[AggregatedProduct], store_count: int) -> str:
    """Deterministic reply used when no AI provider is available."""
    prices = [p.numeric_price for p in products]
    low = min(prices) if prices else Decimal(0)
    high = max(prices) if prices else Decimal(0)
    lowered = (query or "").lower()
    template = DEFAULT_DEMO_TEMPLATE
    for needles, candidate in DEMO_TEMPLATES:
        if any(n in lowered for n in needles):
            template = candidate
            break
    return template.format(
        count=len(products),
        stores=max(1, int(store_count or 0)),
        min_price=_fmt_price(low),
        max_price=_fmt_price(high),
    )
