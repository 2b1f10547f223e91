from home254.fuzzy import similarity, edit_distance


def test_edit_distance_classic_cases():
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("", "abc") == 3
    assert edit_distance("flat", "flat") == 0


def test_similarity_identity():
    for word in ["apartment", "Karen", "", "a"]:
        assert similarity(word, word) == 1.0


def test_similarity_is_case_insensitive():
    assert similarity("Bungalow", "bungalow") == 1.0


def test_similarity_substring_short_circuits():
    assert similarity("bed", "bedsitter") == 0.8
    assert similarity("bedsitter", "bed") == 0.8


def test_similarity_symmetric():
    pairs = [("apartment", "appartment"), ("house", "hose"), ("office", "ofice"), ("karen", "parcel")]
    for a, b in pairs:
        assert similarity(a, b) == similarity(b, a)


def test_similarity_tolerates_single_typo():
    assert similarity("apartment", "appartment") > 0.7
    assert abs(similarity("apartment", "appartment") - 0.9) < 1e-9


def test_similarity_unrelated_words_score_low():
    assert similarity("hello", "office") < 0.5
