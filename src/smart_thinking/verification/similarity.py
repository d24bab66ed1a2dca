"""TF-IDF similarity between short claim texts.

Texts are folded to lowercase ASCII-ish tokens (diacritics stripped), stop
words and very short tokens are dropped, and each text becomes a sparse
TF-IDF vector computed over the corpus being compared. Scores are cosine
similarities clamped to [0, 1].
"""

from __future__ import annotations

import math
import re
import time
import unicodedata
from collections import Counter

from smart_thinking.models import SimilarityMatch

TermVector = dict[str, float]

TOKEN_CACHE_TTL_SECONDS = 3600.0

_TOKEN_SPLIT = re.compile(r"[\W_]+")

# English and French function words
STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "and", "for", "that", "this", "from", "will", "shall", "would",
        "should", "could", "can", "cannot", "nor", "not", "their", "there",
        "here", "very", "have", "has", "had", "she", "him", "her", "his",
        "hers", "its",
        "avec", "dans", "pour", "les", "des", "une", "qui", "que", "quoi",
        "dont", "mais", "car", "donc", "pas", "sur", "sous", "par", "est",
        "sont", "ete", "etre", "aux", "avoir", "avais", "avait", "tout",
        "tous", "vous", "nous", "ils", "elles",
    }
)


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


class SimilarityEngine:
    """Compare texts through TF-IDF term vectors.

    Tokenization results are cached per raw text for one hour.

    Examples:
        >>> engine = SimilarityEngine()
        >>> score = engine.calculate_text_similarity(
        ...     "Paris is the capital of France.", "Paris, capital of France"
        ... )
        >>> score > 0.99
        True
    """

    def __init__(self, token_cache_ttl: float = TOKEN_CACHE_TTL_SECONDS) -> None:
        self._token_cache_ttl = token_cache_ttl
        self._token_cache: dict[str, tuple[list[str], float]] = {}

    def tokenize(self, text: str) -> list[str]:
        now = time.monotonic()
        cached = self._token_cache.get(text)
        if cached is not None and now - cached[1] < self._token_cache_ttl:
            return cached[0]

        tokens = [
            token
            for token in _TOKEN_SPLIT.split(_fold(text))
            if len(token) > 2 and token not in STOP_WORDS
        ]
        self._token_cache[text] = (tokens, now)
        return tokens

    def clear_token_cache(self) -> None:
        self._token_cache.clear()

    @property
    def token_cache_size(self) -> int:
        return len(self._token_cache)

    @staticmethod
    def _term_frequency(tokens: list[str]) -> TermVector:
        if not tokens:
            return {}
        inv_length = 1.0 / len(tokens)
        return {token: count * inv_length for token, count in Counter(tokens).items()}

    @staticmethod
    def _inverse_document_frequency(tokens_list: list[list[str]]) -> TermVector:
        total_docs = len(tokens_list) or 1
        document_frequency: Counter[str] = Counter()
        for tokens in tokens_list:
            document_frequency.update(set(tokens))
        return {
            token: math.log((total_docs + 1) / (df + 1)) + 1
            for token, df in document_frequency.items()
        }

    def _vectors_from_tokens(self, tokens_list: list[list[str]]) -> list[TermVector]:
        if not tokens_list:
            return []
        idf = self._inverse_document_frequency(tokens_list)
        vectors = []
        for tokens in tokens_list:
            tf = self._term_frequency(tokens)
            weighted = {term: weight * idf.get(term, 0.0) for term, weight in tf.items()}
            vectors.append({term: weight for term, weight in weighted.items() if weight > 0})
        return vectors

    def calculate_cosine_similarity(self, vector_a: TermVector, vector_b: TermVector) -> float:
        """Cosine similarity of two sparse vectors, clamped to [0, 1].

        An empty vector on either side yields 0.
        """
        if not vector_a or not vector_b:
            return 0.0

        shorter, longer = (vector_a, vector_b) if len(vector_a) < len(vector_b) else (vector_b, vector_a)
        dot_product = sum(value * longer[key] for key, value in shorter.items() if key in longer)
        norm_a = math.sqrt(sum(value * value for value in vector_a.values()))
        norm_b = math.sqrt(sum(value * value for value in vector_b.values()))
        if norm_a == 0 or norm_b == 0:
            return 0.0

        return max(0.0, min(1.0, dot_product / (norm_a * norm_b)))

    def generate_vectors(self, texts: list[str]) -> list[TermVector]:
        """Vectorize ``texts`` with IDF computed over ``texts`` themselves."""
        return self._vectors_from_tokens([self.tokenize(text) for text in texts])

    def get_vector(self, text: str, corpus: list[str] | None = None) -> TermVector:
        vectors = self.generate_vectors([text, *(corpus or [])])
        return vectors[0] if vectors else {}

    def find_similar_texts(
        self,
        reference: str,
        candidates: list[str],
        limit: int = 5,
        threshold: float = 0.3,
    ) -> list[SimilarityMatch]:
        """Rank ``candidates`` by similarity to ``reference``.

        Args:
            reference: The text to compare against.
            candidates: Texts to score.
            limit: Maximum number of matches returned.
            threshold: Minimum score for a candidate to be returned.

        Returns:
            Matches with ``score >= threshold``, best first, at most ``limit``.
        """
        if not candidates:
            return []

        vectors = self.generate_vectors([reference, *candidates])
        reference_vector = vectors[0]
        scored = [
            SimilarityMatch(
                text=candidate,
                score=self.calculate_cosine_similarity(reference_vector, vectors[index + 1]),
            )
            for index, candidate in enumerate(candidates)
        ]
        ranked = sorted(
            (match for match in scored if match.score >= threshold),
            key=lambda match: match.score,
            reverse=True,
        )
        return ranked[:limit]

    def calculate_text_similarity(self, text_a: str, text_b: str) -> float:
        matches = self.find_similar_texts(text_a, [text_b], limit=1, threshold=0.0)
        return matches[0].score if matches else 0.0


__all__ = ["STOP_WORDS", "SimilarityEngine", "TermVector"]
