from typing import Dict, List

# Hebrew phrase -> English search terms. Store search only matches English
# catalog text, so Hebrew queries get these extra terms.
TERM_TRANSLATIONS: Dict[str, str] = {
    "בגדי ילדים": "children baby kids clothes",
    "ילדים": "children baby kids",
    "תינוק": "baby",
    "רכב": "car automotive",
    "מכונית": "car",
    "ספרים": "book encyclopedia",
    "מוצרי רכב": "car automotive",
    "בגדים": "clothes shirt pants",
    "חולצה": "shirt",
    "מכנסיים": "pants",
    "נעליים": "shoes",
    "אוזניות": "headphones",
    "טלפון": "phone",
    "מחשב": "computer laptop",
    "טלוויזיה": "tv television",
}


def expand_query(query: str, translations: Dict[str, str] = TERM_TRANSLATIONS) -> List[str]:
    """Return the search terms for a query, verbatim query first.

    Dictionary entries are visited in insertion order; an expansion already
    in the list is not added again.
    """
    terms = [query]
    lowered = (query or "").lower()
    for phrase, expansion in translations.items():
        if phrase.lower() in lowered and expansion not in terms:
            terms.append(expansion)
    return terms
