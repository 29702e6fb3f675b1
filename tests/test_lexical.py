import pytest

from config.stopwords import STOP_WORDS
from insights.lexical import (
    FALLBACK_MODEL,
    extract_keywords,
    fallback_embedding,
    is_candidate_term,
    text_checksum,
    tokenize,
)
from pitchhub.domain import EMBEDDING_DIM


class TestTokenize:
    def test_splits_on_non_word_characters_and_lowercases(self):
        assert tokenize("Hello, World! Fintech-startup") == ["hello", "world", "fintech", "startup"]

    def test_empty_text(self):
        assert tokenize("") == []
        assert tokenize("   ") == []


class TestExtractKeywords:
    TEXT = "Fintech startup builds fintech tools for every startup founder. Fintech matters."

    def test_scores_are_frequency_over_all_tokens(self):
        keywords = extract_keywords(self.TEXT, max_terms=3)

        # 11 tokens in total, short words and stop words included
        assert [k.term for k in keywords] == ["fintech", "startup", "builds"]
        assert keywords[0].score == pytest.approx(3 / 11)
        assert keywords[1].score == pytest.approx(2 / 11)
        assert keywords[2].score == pytest.approx(1 / 11)

    def test_short_tokens_and_stop_words_are_dropped(self):
        terms = [k.term for k in extract_keywords(self.TEXT, max_terms=20)]

        assert "for" not in terms
        assert "every" not in terms
        assert all(len(term) >= 4 for term in terms)
        assert not set(terms) & STOP_WORDS

    def test_french_stop_words(self):
        terms = [k.term for k in extract_keywords("nous avons toujours voulu cuisiner avec vous")]
        assert terms == ["avons", "voulu", "cuisiner"]

    def test_max_terms_limit(self):
        assert len(extract_keywords(self.TEXT, max_terms=2)) == 2
        assert extract_keywords(self.TEXT, max_terms=0) == []

    def test_deterministic(self):
        assert extract_keywords(self.TEXT) == extract_keywords(self.TEXT)

    def test_empty_text(self):
        assert extract_keywords("") == []
        assert extract_keywords("a an the") == []

    def test_candidate_term(self):
        assert is_candidate_term("design")
        assert not is_candidate_term("app")
        assert not is_candidate_term("with")


class TestFallbackEmbedding:
    def test_deterministic_and_flagged(self):
        first = fallback_embedding("pitch about cooking")
        second = fallback_embedding("pitch about cooking")

        assert first.vector == second.vector
        assert first.is_fallback
        assert first.model == FALLBACK_MODEL
        assert first.dimension == EMBEDDING_DIM

    def test_components_in_range(self):
        embedding = fallback_embedding("some transcript", dimension=256)
        assert len(embedding.vector) == 256
        assert all(-1.0 <= value <= 1.0 for value in embedding.vector)

    def test_seeded_by_checksum(self):
        assert text_checksum("ab") == ord("a") + ord("b")
        # Same code-point sum, same vector
        assert fallback_embedding("ab", 8).vector == fallback_embedding("ba", 8).vector
        assert fallback_embedding("ab", 8).vector != fallback_embedding("abc", 8).vector

    def test_first_component_of_empty_text(self):
        embedding = fallback_embedding("", dimension=2)
        assert embedding.vector[0] == pytest.approx((49297 / 233280 - 0.5) * 2)
