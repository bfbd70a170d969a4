from typing import List, Optional, Tuple

# (keywords, display name); first match wins, checked against the title.
_STORE_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("laptop", "gaming", "smartphone"), "🖥️ TechMart Electronics"),
    (("children", "baby", "ילד", "בייבי"), "👶 בגדי ילדים"),
    (("tennis", "bike", "sport"), "🏃 ספורטק"),
    (("encyclopedia", "book"), "📚 ספרים ועוד"),
    (("garden", "tool"), "🌱 כלי גינה"),
    (("headphone", "audio"), "🎵 Audio Pro"),
    (("home", "kitchen"), "🏠 בית וגינה"),
    (("fashion", "clothing"), "👕 אופנה"),
    (("beauty", "cosmetic"), "💄 יופי וקוסמטיקה"),
]

DEFAULT_STORE_NAME = "🛍️ מרקט כללי"


def classify_store_name(title: str, product_type: Optional[str] = None, vendor: Optional[str] = None) -> str:
    """Return a display store name for a product.

    The title decides; product type and vendor are consulted only when the
    title matches nothing.
    """
    for text in (title, product_type, vendor):
        lowered = (text or "").lower()
        if not lowered:
            continue
        for keywords, name in _STORE_RULES:
            if any(k in lowered for k in keywords):
                return name
    return DEFAULT_STORE_NAME
