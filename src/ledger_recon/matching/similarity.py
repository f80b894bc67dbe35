"""
Description similarity for transaction matching.

Bank narratives and ledger memos rarely agree word for word. Scoring works
on two kinds of evidence:

* reference identifiers (invoice, cheque and transfer numbers) pulled out of
  the raw text, which win outright when both sides share one
* lexical overlap of the normalized text: token-set (Jaccard), containment
  and edit distance, of which the strongest counts
"""

from typing import Iterable, Optional
import re

from rapidfuzz.distance import Levenshtein

from ..config import ScoringConfig

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
# Alphanumeric runs, optionally joined by hyphens ("INV-2024-0017")
_TOKEN = re.compile(r"[A-Za-z0-9]+(?:-[A-Za-z0-9]+)*")


def normalize_text(text: str, stop_words: Iterable[str] = ()) -> str:
    """
    Reduce a description to its meaningful words.

    Lowercases, turns punctuation into spaces, and drops single characters
    and stop words.

    Args:
        text: Raw description
        stop_words: Words to discard

    Returns:
        Surviving tokens joined by single spaces
    """
    if not text:
        return ""
    stop = stop_words if isinstance(stop_words, (set, frozenset)) else set(stop_words)
    words = _NON_ALNUM.sub(" ", text.lower()).split()
    return " ".join(w for w in words if len(w) > 1 and w not in stop)


def _is_year(value: str, config: ScoringConfig) -> bool:
    return config.year_range_start <= int(value) <= config.year_range_end


def extract_numeric_tokens(
    text: str, config: Optional[ScoringConfig] = None
) -> set[str]:
    """
    Extract likely reference identifiers from a description.

    A token qualifies when it is all digits (at least three, and not a year
    such as 2024) or when it mixes letters with at least three digits.
    Hyphens are removed and letters lowercased, so "INV-1024" and "inv1024"
    are the same token.

    Args:
        text: Raw description
        config: Scoring constants (digit minimum, year range)

    Returns:
        Set of qualifying tokens
    """
    config = config or ScoringConfig()
    tokens: set[str] = set()
    if not text:
        return tokens

    for raw in _TOKEN.findall(text):
        token = raw.replace("-", "").lower()
        digits = sum(ch.isdigit() for ch in token)

        if token.isdigit():
            if len(token) >= config.min_reference_digits and not _is_year(token, config):
                tokens.add(token)
        elif digits >= config.min_reference_digits and any(ch.isalpha() for ch in token):
            tokens.add(token)

    return tokens


def reference_keys(tokens: Iterable[str], config: Optional[ScoringConfig] = None) -> set[str]:
    """
    Expand tokens with their digit cores.

    "ref1024", "inv1024" and "1024" all carry the core "1024", so a bank line
    quoting the invoice number matches a ledger line quoting the same number
    with a different prefix.
    """
    config = config or ScoringConfig()
    keys: set[str] = set()
    for token in tokens:
        keys.add(token)
        core = "".join(ch for ch in token if ch.isdigit())
        if len(core) >= config.min_reference_digits and not _is_year(core, config):
            keys.add(core)
    return keys


def shares_reference(
    left: set[str], right: set[str], config: Optional[ScoringConfig] = None
) -> bool:
    """Check whether two token sets name the same reference identifier."""
    if not left or not right:
        return False
    if left & right:
        return True
    return bool(reference_keys(left, config) & reference_keys(right, config))


class SimilarityScorer:
    """
    Scores how likely two descriptions refer to the same transaction.

    Normalized text and reference tokens are cached per description, since the
    same bank line is compared against many candidates across passes. One
    scorer should be used per reconciliation run.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        """
        Initialize the scorer.

        Args:
            config: Scoring constants and stop words
        """
        self.config = config or ScoringConfig()
        self._normalized: dict[str, str] = {}
        self._references: dict[str, frozenset[str]] = {}

    def normalize(self, text: str) -> str:
        """Normalized form of a description (cached)."""
        cached = self._normalized.get(text)
        if cached is None:
            cached = normalize_text(text, self.config.stop_words)
            self._normalized[text] = cached
        return cached

    def references(self, text: str) -> frozenset[str]:
        """Reference keys of a description, digit cores included (cached)."""
        cached = self._references.get(text)
        if cached is None:
            tokens = extract_numeric_tokens(text, self.config)
            cached = frozenset(reference_keys(tokens, self.config))
            self._references[text] = cached
        return cached

    def share_reference(self, text1: str, text2: str) -> bool:
        """True when both descriptions quote the same reference identifier."""
        return bool(self.references(text1) & self.references(text2))

    def score(self, text1: str, text2: str) -> float:
        """
        Similarity between two descriptions, from 0.0 to 1.0.

        A shared reference identifier returns the numeric identity score
        straight away. Otherwise the best of token-set overlap, containment and
        edit-distance similarity of the normalized text is returned.
        """
        config = self.config

        if self.share_reference(text1, text2):
            return config.numeric_identity_score

        s1 = self.normalize(text1)
        s2 = self.normalize(text2)

        if not s1 or not s2:
            return 0.0
        if s1 == s2:
            return 1.0

        return max(
            self.token_set_score(s1, s2),
            self.containment_score(s1, s2),
            self.edit_distance_score(s1, s2),
        )

    @staticmethod
    def token_set_score(s1: str, s2: str) -> float:
        """Jaccard index of the word sets."""
        tokens1 = set(s1.split())
        tokens2 = set(s2.split())
        union = tokens1 | tokens2
        if not union:
            return 0.0
        return len(tokens1 & tokens2) / len(union)

    def containment_score(self, s1: str, s2: str) -> float:
        """Fixed score when one string contains the other ("tech corp" / "tech corp intl")."""
        if s1 in s2 or s2 in s1:
            return self.config.containment_score
        return 0.0

    def edit_distance_score(self, s1: str, s2: str) -> float:
        """
        Character-level similarity for short strings with typos.

        Only applies when both strings are long enough and close in length;
        otherwise returns 0.
        """
        config = self.config
        if (
            len(s1) <= config.edit_distance_min_length
            or len(s2) <= config.edit_distance_min_length
            or abs(len(s1) - len(s2)) >= config.edit_distance_max_length_gap
        ):
            return 0.0

        max_len = max(len(s1), len(s2))
        return 1.0 - Levenshtein.distance(s1, s2) / max_len
