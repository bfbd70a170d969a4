from storefront_gateway.domain.expand import TERM_TRANSLATIONS, expand_query


def test_plain_query_is_returned_alone():
    assert expand_query("laptop") == ["laptop"]


def test_hebrew_phrase_adds_english_terms_after_verbatim_query():
    terms = expand_query("מחשב נייד")
    assert terms[0] == "מחשב נייד"
    assert terms[1:] == ["computer laptop"]


def test_overlapping_phrases_follow_dictionary_order():
    # "בגדי ילדים" contains "ילדים"; both entries match.
    terms = expand_query("בגדי ילדים")
    assert terms == ["בגדי ילדים", "children baby kids clothes", "children baby kids"]


def test_identical_expansions_are_not_repeated():
    # "רכב" and "מוצרי רכב" share the expansion "car automotive".
    terms = expand_query("מוצרי רכב")
    assert terms.count("car automotive") == 1


def test_matching_is_case_insensitive_with_custom_table():
    terms = expand_query("Cheap LAPTOP deals", {"laptop": "notebook"})
    assert terms == ["Cheap LAPTOP deals", "notebook"]


def test_empty_query_still_yields_one_term():
    assert expand_query("") == [""]


def test_default_table_keeps_its_entries():
    assert len(TERM_TRANSLATIONS) == 15
    assert next(iter(TERM_TRANSLATIONS)) == "בגדי ילדים"
