from pitchhub.pipelines.normalization import normalize_text


def test_normalize_text_strips_markup_urls_and_whitespace():
    raw = "  <p>Notre   projet</p> voir https://example.com/demo  maintenant!!!  "
    assert normalize_text(raw) == "Notre projet voir maintenant!"


def test_normalize_text_composes_accents_and_quotes():
    decomposed = "cafe\u0301 \u201cbio\u201d"
    assert normalize_text(decomposed) == "caf\u00e9 \"bio\""


def test_normalize_text_blank_and_lowercase():
    assert normalize_text("   ") == ""
    assert normalize_text("Fintech Startup", lowercase=True) == "fintech startup"
