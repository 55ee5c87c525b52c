# tests/test_scripture_services.py
"""Tests for keyword ranking and citation extraction."""
from counselor_api.core.config import settings
from counselor_api.models.counsel_models import ScriptureReference
from counselor_api.services.scripture_services import (
    ScriptureCorpus,
    ScripturePassage,
    extract_keywords,
    extract_scripture_citations,
    merge_references,
    rank,
)


def passage(name, text):
    return ScripturePassage(name, 1, 1, text)


class TestExtractKeywords:
    def test_drops_short_and_stop_words(self):
        assert extract_keywords("I am so worried about my family") == {"worried", "about", "family"}

    def test_duplicates_collapse(self):
        assert extract_keywords("peace peace PEACE") == {"peace"}


class TestRank:
    def test_ties_keep_corpus_order(self):
        a = passage("A", "hope and peace")
        b = passage("B", "peace with hope")
        c = passage("C", "only hope here")
        ranked = rank("hope peace", [a, b, c], 2)
        assert ranked == [a, b]

    def test_higher_score_first(self):
        a = passage("A", "hope")
        b = passage("B", "hope and peace")
        assert rank("hope peace", [a, b], 2) == [b, a]

    def test_keyword_counts_once_per_passage(self):
        a = passage("A", "hope hope hope hope")
        b = passage("B", "hope and peace")
        assert rank("hope peace", [a, b], 1) == [b]

    def test_only_matching_passages_are_returned(self):
        a = passage("A", "hope")
        b = passage("B", "nothing relevant")
        assert rank("hope", [a, b], 3) == [a]

    def test_fallback_is_first_k_and_deterministic(self):
        corpus = [passage(str(i), f"verse {i}") for i in range(5)]
        first = rank("quantum chromodynamics", corpus, 3)
        assert first == corpus[:3]
        assert rank("quantum chromodynamics", corpus, 3) == first

    def test_query_without_keywords_falls_back(self):
        corpus = [passage(str(i), "the and for") for i in range(4)]
        assert rank("I am ok", corpus, 2) == corpus[:2]

    def test_never_more_than_k(self, corpus):
        assert len(rank("thought things thanksgiving", corpus, 1)) == 1
        assert rank("thought", corpus, 0) == []

    def test_packaged_corpus(self):
        corpus = ScriptureCorpus.load(settings.SCRIPTURE_CORPUS_PATH)
        assert len(corpus) > 0
        ranked = rank("I am weary and need rest", corpus, 3)
        assert 0 < len(ranked) <= 3
        assert any("rest" in p.text.lower() for p in ranked)


class TestCitations:
    def test_extracts_simple_and_numbered_books(self, corpus):
        refs = extract_scripture_citations("Remember Philippians 4:6 and 1 Peter 5:7 today.", corpus)
        assert [(r.book, r.chapter, r.verse_start) for r in refs] == [("Philippians", 4, 6), ("1 Peter", 5, 7)]
        assert refs[0].text.startswith("Be careful for nothing")

    def test_range_and_unknown_passage(self, corpus):
        refs = extract_scripture_citations("See 1 Corinthians 13:4-7.", corpus)
        assert len(refs) == 1
        assert refs[0].book == "1 Corinthians"
        assert refs[0].verse_end == 7
        assert refs[0].text == ""

    def test_leading_capitalised_word_is_dropped(self, corpus):
        refs = extract_scripture_citations("Read Matthew 6:34 slowly.", corpus)
        assert refs[0].book == "Matthew"
        assert "morrow" in refs[0].text

    def test_psalm_alias(self):
        refs = extract_scripture_citations("As Psalm 23:4 says")
        assert refs[0].book == "Psalms"

    def test_song_of_solomon(self):
        refs = extract_scripture_citations("Read Song of Solomon 2:4 and Song Solomon 8:7.")
        assert [(r.book, r.chapter, r.verse_start) for r in refs] == [
            ("Song of Solomon", 2, 4),
            ("Song of Solomon", 8, 7),
        ]

    def test_duplicates_are_dropped(self, corpus):
        refs = extract_scripture_citations("Philippians 4:6 ... again Philippians 4:6", corpus)
        assert len(refs) == 1

    def test_no_citations(self):
        assert extract_scripture_citations("No verses here.") == []


class TestMergeReferences:
    def test_retrieved_first_then_new_citations(self):
        retrieved = [ScriptureReference(book="John", chapter=14, verse_start=27, translation="KJV", text="Peace")]
        cited = [
            ScriptureReference(book="John", chapter=14, verse_start=27, translation="KJV", text="Peace"),
            ScriptureReference(book="Romans", chapter=8, verse_start=28, translation="KJV"),
        ]
        merged = merge_references(retrieved, cited)
        assert [(r.book, r.verse_start) for r in merged] == [("John", 27), ("Romans", 28)]
