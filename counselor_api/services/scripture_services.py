# counselor_api/services/scripture_services.py
import json
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from counselor_api.core.config import settings
from counselor_api.models.counsel_models import ScriptureReference

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "is", "am", "are",
    "was", "were", "be", "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "should", "could", "may", "might", "can", "i", "you", "he", "she", "it", "we",
    "they", "my", "your", "his", "her", "its", "our", "their",
})

MIN_KEYWORD_LENGTH = 4
MAX_CITED_VERSES = 30

# "John 3:16", "1 Corinthians 13:4-7", "Song of Solomon 2:4"
CITATION_PATTERN = re.compile(r"\b(\d\s)?([A-Z][a-z]+(?:\s(?:of\s)?[A-Z][a-z]+)?)\s(\d+):(\d+)(?:-(\d+))?")

BIBLE_BOOKS = frozenset({
    "Genesis", "Exodus", "Leviticus", "Numbers", "Deuteronomy", "Joshua", "Judges", "Ruth",
    "Samuel", "Kings", "Chronicles", "Ezra", "Nehemiah", "Esther", "Job", "Psalms", "Proverbs",
    "Ecclesiastes", "Song of Solomon", "Isaiah", "Jeremiah", "Lamentations",
    "Ezekiel", "Daniel", "Hosea", "Joel", "Amos", "Obadiah", "Jonah", "Micah", "Nahum",
    "Habakkuk", "Zephaniah", "Haggai", "Zechariah", "Malachi", "Matthew", "Mark", "Luke",
    "John", "Acts", "Romans", "Corinthians", "Galatians", "Ephesians", "Philippians",
    "Colossians", "Thessalonians", "Timothy", "Titus", "Philemon", "Hebrews", "James", "Peter",
    "Jude", "Revelation",
})
BOOK_ALIASES = {"Psalm": "Psalms", "Revelations": "Revelation", "Song Solomon": "Song of Solomon"}


@dataclass(frozen=True)
class ScripturePassage:
    book: str
    chapter: int
    verse: int
    text: str
    translation: str = "KJV"

    @property
    def key(self) -> Tuple[str, int, int]:
        return (self.book, self.chapter, self.verse)

    def to_reference(self) -> ScriptureReference:
        return ScriptureReference(
            book=self.book,
            chapter=self.chapter,
            verse_start=self.verse,
            translation=self.translation,
            text=self.text,
        )


class ScriptureCorpus:
    """An ordered, read-only collection of passages. Order matters: it breaks ranking ties."""

    def __init__(self, passages: Sequence[ScripturePassage], translation: str = "KJV"):
        self.passages: Tuple[ScripturePassage, ...] = tuple(passages)
        self.translation = translation
        self._by_key: Dict[Tuple[str, int, int], ScripturePassage] = {p.key: p for p in self.passages}

    def __len__(self) -> int:
        return len(self.passages)

    def __iter__(self):
        return iter(self.passages)

    def lookup(self, book: str, chapter: int, verse: int) -> Optional[ScripturePassage]:
        return self._by_key.get((book, chapter, verse))

    @classmethod
    def load(cls, path: str) -> "ScriptureCorpus":
        with open(path, "r", encoding="utf-8") as file:
            data = json.load(file)
        translation = data.get("translation", "KJV")
        passages = [
            ScripturePassage(
                book=v["book"],
                chapter=int(v["chapter"]),
                verse=int(v["verse"]),
                text=v["text"],
                translation=v.get("translation", translation),
            )
            for v in data["verses"]
        ]
        logger.info(f"Loaded {len(passages)} scripture passages ({translation}) from {path}")
        return cls(passages, translation=translation)


def extract_keywords(query: str) -> Set[str]:
    """Whitespace tokens of the lower-cased query, minus short words and stop words."""
    return {
        word for word in query.lower().split()
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS
    }


def score_passage(passage: ScripturePassage, keywords: Set[str]) -> int:
    text = passage.text.lower()
    return sum(1 for keyword in keywords if keyword in text)


def rank(query: str, corpus: Sequence[ScripturePassage], k: int) -> List[ScripturePassage]:
    """
    Returns the k passages most relevant to query.

    Each distinct keyword contributes at most one point to a passage's score. Passages with
    a positive score are ordered by descending score; equal scores keep corpus order since
    sorted() is stable. When nothing scores, the first k passages of the corpus are
    returned so a reply is never scripture-free.
    """
    if k <= 0:
        return []
    passages = list(corpus)
    keywords = extract_keywords(query)

    scored = [(score_passage(p, keywords), p) for p in passages] if keywords else []
    matching = [item for item in scored if item[0] > 0]
    if not matching:
        return passages[:k]

    ranked = sorted(matching, key=lambda item: -item[0])
    return [p for _, p in ranked[:k]]


def _resolve_book(prefix: Optional[str], name: str) -> str:
    name = BOOK_ALIASES.get(name, name)
    if name not in BIBLE_BOOKS and " " in name:
        # "Read John 3:16" captures "Read John"; keep the trailing book name.
        last = name.rsplit(" ", 1)[1]
        last = BOOK_ALIASES.get(last, last)
        if last in BIBLE_BOOKS:
            name = last
            prefix = None
    return f"{prefix.strip()} {name}" if prefix else name


def extract_scripture_citations(text: str, corpus: Optional[ScriptureCorpus] = None) -> List[ScriptureReference]:
    """
    Finds "Book Chapter:Verse[-End]" citations in generated text, in order of appearance.

    Citations of passages present in the corpus carry the corpus text; others carry an
    empty text.
    """
    translation = corpus.translation if corpus is not None else "KJV"
    references = []
    seen = set()
    for match in CITATION_PATTERN.finditer(text or ""):
        book = _resolve_book(match.group(1), match.group(2))
        chapter = int(match.group(3))
        verse_start = int(match.group(4))
        verse_end = int(match.group(5)) if match.group(5) else None
        key = (book, chapter, verse_start, verse_end)
        if key in seen:
            continue
        seen.add(key)

        passages = _lookup_range(corpus, book, chapter, verse_start, verse_end) if corpus is not None else []
        references.append(ScriptureReference(
            book=book,
            chapter=chapter,
            verse_start=verse_start,
            verse_end=verse_end,
            translation=passages[0].translation if passages else translation,
            text=" ".join(p.text for p in passages),
        ))
    return references


def _lookup_range(corpus: ScriptureCorpus, book: str, chapter: int, start: int,
                  end: Optional[int]) -> List[ScripturePassage]:
    end = start if end is None or end < start else min(end, start + MAX_CITED_VERSES - 1)
    found = (corpus.lookup(book, chapter, verse) for verse in range(start, end + 1))
    return [p for p in found if p is not None]


def merge_references(retrieved: Sequence[ScriptureReference],
                     cited: Sequence[ScriptureReference]) -> List[ScriptureReference]:
    """Retrieved passages first, then citations that do not repeat one of them."""
    merged = list(retrieved)
    present = {(r.book, r.chapter, r.verse_start, r.verse_end) for r in merged}
    for reference in cited:
        key = (reference.book, reference.chapter, reference.verse_start, reference.verse_end)
        if key not in present:
            present.add(key)
            merged.append(reference)
    return merged


_default_corpus: Optional[ScriptureCorpus] = None


def get_scripture_corpus() -> ScriptureCorpus:
    global _default_corpus
    if _default_corpus is None:
        _default_corpus = ScriptureCorpus.load(settings.SCRIPTURE_CORPUS_PATH)
    return _default_corpus
