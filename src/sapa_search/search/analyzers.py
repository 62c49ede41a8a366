"""Text analysis for indexing and querying.

Documents and query terms run through the same pipeline so that stemmed index
terms line up with stemmed query terms:

    separator tokenizer -> trim -> lowercase -> stopwords -> Porter stemmer

The tokenizer splits on whitespace and hyphens, the trimmer strips leading and
trailing non-word characters ("member's," -> "member's"). Prefix (wildcard)
terms skip stemming and are only trimmed and lowercased, see ``normalize_prefix``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, replace
import re
from typing import Protocol


@dataclass
class Token:
    """A token emitted by analyzers."""

    text: str
    position: int

    def copy_with(self, **updates: object) -> Token:
        return replace(self, **updates)


class Analyzer(Protocol):
    def __call__(self, text: str) -> list[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class SeparatorTokenizer:
    """Split on whitespace and hyphens."""

    def __init__(self, separator: str = r"[\s\-]+") -> None:
        self.separator = re.compile(separator)

    def __call__(self, text: str) -> Iterator[Token]:
        position = 0
        for chunk in self.separator.split(text):
            if not chunk:
                continue
            yield Token(text=chunk, position=position)
            position += 1


_LEADING_NON_WORD = re.compile(r"^\W+")
_TRAILING_NON_WORD = re.compile(r"\W+$")


def trim_non_word(text: str) -> str:
    return _TRAILING_NON_WORD.sub("", _LEADING_NON_WORD.sub("", text))


class TrimFilter:
    """Strip punctuation around tokens and drop tokens that become empty."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            trimmed = trim_non_word(token.text)
            if not trimmed:
                continue
            yield token if trimmed == token.text else token.copy_with(text=trimmed)


class LowercaseFilter:
    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text.islower():
                yield token
            else:
                yield token.copy_with(text=token.text.lower())


DEFAULT_STOPWORDS = (
    "a", "about", "after", "all", "also", "an", "and", "any", "are", "as", "at",
    "be", "been", "but", "by", "can", "could", "did", "do", "does", "for", "from",
    "had", "has", "have", "he", "her", "his", "how", "i", "if", "in", "into", "is",
    "it", "its", "may", "me", "my", "no", "nor", "not", "of", "off", "on", "or",
    "our", "she", "so", "such", "than", "that", "the", "their", "them", "then",
    "there", "these", "they", "this", "to", "too", "us", "was", "we", "were",
    "what", "when", "where", "which", "while", "who", "why", "will", "with",
    "would", "you", "your",
)  # fmt: skip


class StopFilter:
    """Remove stopwords; expects lowercased input."""

    def __init__(self, stopwords: Sequence[str] | None = None) -> None:
        vocab = stopwords if stopwords is not None else DEFAULT_STOPWORDS
        self.stopwords = frozenset(word.lower() for word in vocab)

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text not in self.stopwords:
                yield token


# Porter (1980) suffix tables, longest suffix first within each step.
_STEP2_RULES: tuple[tuple[str, str], ...] = (
    ("ational", "ate"),
    ("tional", "tion"),
    ("ization", "ize"),
    ("iveness", "ive"),
    ("fulness", "ful"),
    ("ousness", "ous"),
    ("biliti", "ble"),
    ("entli", "ent"),
    ("ousli", "ous"),
    ("ation", "ate"),
    ("alism", "al"),
    ("aliti", "al"),
    ("iviti", "ive"),
    ("enci", "ence"),
    ("anci", "ance"),
    ("izer", "ize"),
    ("alli", "al"),
    ("ator", "ate"),
    ("logi", "log"),
    ("bli", "ble"),
    ("eli", "e"),
)
_STEP3_RULES: tuple[tuple[str, str], ...] = (
    ("icate", "ic"),
    ("ative", ""),
    ("alize", "al"),
    ("iciti", "ic"),
    ("ical", "ic"),
    ("ness", ""),
    ("ful", ""),
)
_STEP4_SUFFIXES: tuple[str, ...] = (
    "ement", "ance", "ence", "able", "ible", "ment", "ant", "ent", "ism", "ate",
    "iti", "ous", "ive", "ize", "ion", "al", "er", "ic", "ou",
)  # fmt: skip


def _is_consonant(word: str, index: int) -> bool:
    char = word[index]
    if char in "aeiou":
        return False
    if char == "y":
        return index == 0 or not _is_consonant(word, index - 1)
    return True


def _measure(stem: str) -> int:
    """Number of vowel-consonant sequences, the ``m`` in ``[C](VC)^m[V]``."""
    count = 0
    index = 0
    length = len(stem)
    while index < length and _is_consonant(stem, index):
        index += 1
    while index < length:
        while index < length and not _is_consonant(stem, index):
            index += 1
        if index >= length:
            break
        while index < length and _is_consonant(stem, index):
            index += 1
        count += 1
    return count


def _has_vowel(stem: str) -> bool:
    return any(not _is_consonant(stem, i) for i in range(len(stem)))


def _ends_double_consonant(word: str) -> bool:
    return len(word) >= 2 and word[-1] == word[-2] and _is_consonant(word, len(word) - 1)


def _ends_cvc(word: str) -> bool:
    if len(word) < 3:
        return False
    return (
        _is_consonant(word, len(word) - 3)
        and not _is_consonant(word, len(word) - 2)
        and _is_consonant(word, len(word) - 1)
        and word[-1] not in "wxy"
    )


def _replace_suffix(word: str, rules: Sequence[tuple[str, str]], min_measure: int) -> str:
    for suffix, replacement in rules:
        if word.endswith(suffix):
            stem = word[: -len(suffix)]
            if _measure(stem) > min_measure:
                return stem + replacement
            return word
    return word


def _step1(word: str) -> str:
    if word.endswith("sses") or word.endswith("ies"):
        word = word[:-2]
    elif word.endswith("s") and not word.endswith("ss"):
        word = word[:-1]

    stripped = False
    if word.endswith("eed"):
        if _measure(word[:-3]) > 0:
            word = word[:-1]
    elif word.endswith("ed") and _has_vowel(word[:-2]):
        word, stripped = word[:-2], True
    elif word.endswith("ing") and _has_vowel(word[:-3]):
        word, stripped = word[:-3], True

    if stripped:
        if word.endswith(("at", "bl", "iz")):
            word += "e"
        elif _ends_double_consonant(word) and word[-1] not in "lsz":
            word = word[:-1]
        elif _measure(word) == 1 and _ends_cvc(word):
            word += "e"

    if word.endswith("y") and _has_vowel(word[:-1]):
        word = word[:-1] + "i"
    return word


def _step4(word: str) -> str:
    for suffix in _STEP4_SUFFIXES:
        if not word.endswith(suffix):
            continue
        stem = word[: -len(suffix)]
        if _measure(stem) <= 1:
            return word
        if suffix == "ion" and not stem.endswith(("s", "t")):
            return word
        return stem
    return word


def _step5(word: str) -> str:
    if word.endswith("e"):
        stem = word[:-1]
        measure = _measure(stem)
        if measure > 1 or (measure == 1 and not _ends_cvc(stem)):
            word = stem
    if word.endswith("ll") and _measure(word) > 1:
        word = word[:-1]
    return word


def porter_stem(word: str) -> str:
    """Stem a lowercase word with the classic Porter algorithm."""
    if len(word) <= 2:
        return word
    word = _step1(word)
    word = _replace_suffix(word, _STEP2_RULES, 0)
    word = _replace_suffix(word, _STEP3_RULES, 0)
    word = _step4(word)
    return _step5(word)


class PorterStemFilter:
    def __init__(self, stem: Callable[[str], str] = porter_stem) -> None:
        self._stem = stem

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            stemmed = self._stem(token.text)
            yield token if stemmed == token.text else token.copy_with(text=stemmed)


class AnalyzerPipeline:
    """Tokenizer followed by a chain of filters."""

    def __init__(self, tokenizer: Callable[[str], Iterator[Token]], filters: Sequence[TokenFilter] = ()) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters)

    def __call__(self, text: str) -> list[Token]:
        stream: Iterable[Token] = self.tokenizer(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        tokens = list(stream)
        for idx, token in enumerate(tokens):  # positions are contiguous after filtering
            token.position = idx
        return tokens


class StandardAnalyzer:
    """Default analyzer for every indexed field."""

    def __init__(self, *, stopwords: Sequence[str] | None = None, apply_stemming: bool = True) -> None:
        filters: list[TokenFilter] = [TrimFilter(), LowercaseFilter(), StopFilter(stopwords)]
        if apply_stemming:
            filters.append(PorterStemFilter())
        self.pipeline = AnalyzerPipeline(SeparatorTokenizer(), filters)

    def __call__(self, text: str) -> list[Token]:
        return self.pipeline(text)


class KeywordAnalyzer:
    """Whole value as one lowercased token."""

    def __call__(self, text: str) -> list[Token]:
        normalized = text.strip().lower()
        if not normalized:
            return []
        return [Token(text=normalized, position=0)]


def normalize_prefix(text: str) -> str:
    """Normalize the stem of a wildcard term (``"Spri*"`` -> ``"spri"``)."""
    return trim_non_word(text.rstrip("*")).lower()


_ANALYZER_FACTORIES: dict[str, Callable[[], Analyzer]] = {
    "standard": lambda: StandardAnalyzer(),
    "english-nostem": lambda: StandardAnalyzer(apply_stemming=False),
    "keyword": lambda: KeywordAnalyzer(),
}
_ANALYZER_CACHE: dict[str, Analyzer] = {}


def get_analyzer(name: str | None) -> Analyzer:
    """Return a shared analyzer instance by name, defaulting to ``standard``."""
    normalized = (name or "standard").lower()
    if normalized not in _ANALYZER_FACTORIES:
        msg = f"Unknown analyzer '{name}'. Available: {sorted(_ANALYZER_FACTORIES)}"
        raise ValueError(msg)
    analyzer = _ANALYZER_CACHE.get(normalized)
    if analyzer is None:
        analyzer = _ANALYZER_FACTORIES[normalized]()
        _ANALYZER_CACHE[normalized] = analyzer
    return analyzer
