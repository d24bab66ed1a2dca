"""Session-scoped verification memory.

VerificationMemory keeps verified claims per reasoning session so that a
claim phrased slightly differently later in the same session can reuse an
earlier outcome. Entries expire after a TTL; two background sweeps remove
expired entries and reset the similarity memo.

Lookups never cross session boundaries.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import re
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

from smart_thinking.config import Settings, get_settings
from smart_thinking.models import (
    MemoryStats,
    SimilarityMatch,
    VerificationEntry,
    VerificationSearchResult,
    VerificationStatus,
)

if TYPE_CHECKING:
    from smart_thinking.verification.similarity import SimilarityEngine

logger = structlog.get_logger(__name__)

_MATH_EXPRESSION = re.compile(r"\d+(?:[.,]\d+)?(?:\s*[+\-*/^]\s*\d+(?:[.,]\d+)?)+")
_PUNCTUATION = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")
_DIGITS = re.compile(r"\d+")
_SENTENCE_BREAK = re.compile(r"[.!?;]")

SEQUENCE_BONUS = 0.2
TEXT_MATCH_CAP = 0.95


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _placeholder(index: int) -> str:
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("a") + remainder) + letters
    return f"zzmath{letters}zz"


def normalize_text(text: str) -> str:
    """Normalize text for token-overlap matching.

    Arithmetic expressions are kept verbatim (whitespace removed), other
    numbers become ``NUM``, punctuation becomes whitespace.
    """
    expressions: list[str] = []

    def _stash(match: re.Match[str]) -> str:
        expressions.append(_WHITESPACE.sub("", match.group(0)))
        return f" {_placeholder(len(expressions) - 1)} "

    tokenized = _MATH_EXPRESSION.sub(_stash, text).lower()
    normalized = _PUNCTUATION.sub(" ", tokenized)
    normalized = _WHITESPACE.sub(" ", normalized)
    normalized = _DIGITS.sub("NUM", normalized).strip()

    for index, expression in enumerate(expressions):
        normalized = normalized.replace(_placeholder(index), expression)
    return normalized


def text_match_score(query: str, candidate: str) -> float:
    """Token-overlap similarity used when no similarity engine can answer.

    Jaccard similarity over normalized words longer than three characters,
    plus a bonus when a sentence of at least three words from ``query``
    appears verbatim in ``candidate``. Capped below an exact match.
    """
    normalized_query = normalize_text(query)
    normalized_candidate = normalize_text(candidate)

    query_words = {word for word in normalized_query.split() if len(word) > 3}
    candidate_words = {word for word in normalized_candidate.split() if len(word) > 3}
    union = query_words | candidate_words
    jaccard = len(query_words & candidate_words) / len(union) if union else 0.0

    bonus = 0.0
    for chunk in _SENTENCE_BREAK.split(query):
        normalized_chunk = normalize_text(chunk)
        if len(normalized_chunk.split()) >= 3 and normalized_chunk in normalized_candidate:
            bonus = SEQUENCE_BONUS
            break

    return min(jaccard + bonus, TEXT_MATCH_CAP)


class VerificationMemory:
    """In-process store of verification outcomes, partitioned by session.

    The memory is created explicitly and owned by a VerificationContext.
    ``start()`` launches the periodic sweeps; ``stop()`` cancels them. Both
    sweeps can also be invoked directly.

    Examples:
        >>> memory = VerificationMemory(similarity_engine=SimilarityEngine())
        >>> await memory.start()
        >>> entry_id = await memory.add_verification(
        ...     "Paris is the capital of France.", VerificationStatus.VERIFIED, 0.9,
        ...     ["wiki"], session_id="s1",
        ... )
        >>> hit = await memory.find_verification("Paris, capital of France", "s1")
        >>> await memory.stop()
    """

    def __init__(
        self,
        similarity_engine: SimilarityEngine | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings or get_settings()
        self._similarity_engine = similarity_engine
        self._clock = clock

        self._entries: dict[str, VerificationEntry] = {}
        self._session_index: dict[str, set[str]] = {}
        # query prefix -> {"<prefix>_<entry id>": score}
        self._similarity_memo: dict[str, dict[str, float]] = {}
        self._session_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

        self._expiry_task: asyncio.Task | None = None
        self._memo_task: asyncio.Task | None = None
        self._shutdown = False

    @property
    def _memory_settings(self):
        return self._settings.verification.memory

    @property
    def _similarity(self):
        return self._settings.verification.similarity

    @property
    def is_running(self) -> bool:
        return self._expiry_task is not None and not self._expiry_task.done()

    def set_similarity_engine(self, engine: SimilarityEngine | None) -> None:
        self._similarity_engine = engine
        logger.debug("similarity_engine_configured", configured=engine is not None)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the expiry and memo sweeps. Calling twice is a no-op."""
        if self.is_running:
            return
        self._shutdown = False
        period = self._memory_settings.cache_expiration
        self._expiry_task = asyncio.create_task(
            self._sweep_loop(period / 2, self.clean_expired_entries)
        )
        self._memo_task = asyncio.create_task(self._sweep_loop(period, self.clean_similarity_cache))
        logger.info("verification_memory_started", sweep_period=period / 2)

    async def stop(self) -> None:
        """Cancel the sweeps and wait for them to finish. Idempotent."""
        self._shutdown = True
        for task in (self._expiry_task, self._memo_task):
            if task is None:
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._expiry_task = None
        self._memo_task = None
        logger.info("verification_memory_stopped")

    async def _sweep_loop(self, interval: float, sweep: Callable[[], int]) -> None:
        while not self._shutdown:
            try:
                await asyncio.sleep(interval)
                if self._shutdown:
                    break
                sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("memory_sweep_failed", sweep=sweep.__name__, error=str(e))

    def clean_expired_entries(self) -> int:
        """Remove every entry whose expiry is in the past.

        Returns:
            The number of entries removed.
        """
        now = self._clock()
        expired = [entry for entry in self._entries.values() if entry.is_expired(now)]
        for entry in expired:
            self._remove_entry(entry)
        if expired:
            logger.info("expired_verifications_removed", count=len(expired))
        return len(expired)

    def clean_similarity_cache(self) -> int:
        """Clear the similarity memo.

        Returns:
            The number of memoized scores dropped.
        """
        size = self._memo_size()
        self._similarity_memo.clear()
        if size:
            logger.debug("similarity_memo_cleared", count=size)
        return size

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _remove_entry(self, entry: VerificationEntry) -> None:
        self._entries.pop(entry.id, None)
        ids = self._session_index.get(entry.session_id)
        if ids is not None:
            ids.discard(entry.id)
            if not ids:
                del self._session_index[entry.session_id]
                lock = self._session_locks.get(entry.session_id)
                # a held lock still guards an add in flight
                if lock is not None and not lock.locked():
                    del self._session_locks[entry.session_id]

    def _session_entries(self, session_id: str) -> list[VerificationEntry]:
        now = self._clock()
        return [
            entry
            for entry_id in self._session_index.get(session_id, ())
            if (entry := self._entries.get(entry_id)) is not None and not entry.is_expired(now)
        ]

    def _memo_size(self) -> int:
        return sum(len(scores) for scores in self._similarity_memo.values())

    def _remember_similarity(self, text: str, entry_id: str, score: float) -> None:
        if self._memo_size() >= self._memory_settings.max_cache_size:
            self._similarity_memo.clear()
        prefix = text[:50]
        self._similarity_memo.setdefault(prefix, {})[f"{prefix}_{entry_id}"] = score

    def get_cached_similarity(self, text: str, entry_id: str) -> float | None:
        prefix = text[:50]
        return self._similarity_memo.get(prefix, {}).get(f"{prefix}_{entry_id}")

    async def _rank(
        self, text: str, entries: list[VerificationEntry], limit: int, threshold: float
    ) -> list[SimilarityMatch]:
        """Ask the similarity engine to rank entry texts against ``text``."""
        if self._similarity_engine is None:
            return []
        matches: Any = self._similarity_engine.find_similar_texts(
            text, [entry.text for entry in entries], limit, threshold
        )
        if inspect.isawaitable(matches):
            matches = await matches
        return list(matches)

    @staticmethod
    def _entry_for(text: str, entries: Iterable[VerificationEntry]) -> VerificationEntry | None:
        return next((entry for entry in entries if entry.text == text), None)

    async def _find_duplicate(self, text: str, session_id: str) -> VerificationEntry | None:
        entries = self._session_entries(session_id)
        if not entries:
            return None

        exact = self._entry_for(text, entries)
        if exact is not None:
            return exact

        if self._similarity_engine is None:
            return None

        try:
            matches = await self._rank(text, entries, 1, self._similarity.medium_similarity)
        except Exception as e:
            logger.warning("duplicate_search_failed", session_id=session_id, error=str(e))
            return None

        if matches:
            entry = self._entry_for(matches[0].text, entries)
            if entry is not None:
                self._remember_similarity(text, entry.id, matches[0].score)
                return entry
        return None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def add_verification(
        self,
        text: str,
        status: VerificationStatus,
        confidence: float,
        sources: Iterable[str] = (),
        session_id: str | None = None,
        ttl: float | None = None,
    ) -> str:
        """Store a verification, merging into a near-duplicate when one exists.

        Args:
            text: The verified claim.
            status: Verification status.
            confidence: Confidence in the status (0.0 to 1.0).
            sources: Sources backing the status.
            session_id: Owning session; defaults to the configured default session.
            ttl: Lifetime in seconds; defaults to ``default_session_ttl``.

        Returns:
            The id of the new entry, or of the existing entry that was refreshed.
        """
        session_id = session_id or self._settings.default_session_id
        ttl = self._memory_settings.default_session_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        sources = list(sources)

        async with self._session_locks[session_id]:
            now = self._clock()
            expires_at = now + timedelta(seconds=ttl)

            existing = await self._find_duplicate(text, session_id)
            if existing is not None:
                merged = VerificationEntry.model_validate(
                    existing.model_dump()
                    | {
                        "status": status,
                        "confidence": confidence,
                        "sources": sources,
                        "timestamp": now,
                        "expires_at": expires_at,
                    }
                )
                self._entries[merged.id] = merged
                logger.debug(
                    "verification_merged",
                    entry_id=merged.id,
                    session_id=session_id,
                    status=merged.status.value,
                )
                return merged.id

            entry = VerificationEntry(
                id=f"verification-{uuid4().hex}",
                text=text,
                status=status,
                confidence=confidence,
                sources=sources,
                timestamp=now,
                session_id=session_id,
                expires_at=expires_at,
            )
            self._entries[entry.id] = entry
            self._session_index.setdefault(session_id, set()).add(entry.id)
            logger.debug(
                "verification_added",
                entry_id=entry.id,
                session_id=session_id,
                status=entry.status.value,
                confidence=round(confidence, 3),
            )
            return entry.id

    async def find_verification(
        self,
        text: str,
        session_id: str | None = None,
        similarity_threshold: float | None = None,
    ) -> VerificationSearchResult | None:
        """Find the stored verification closest to ``text`` in a session.

        Uses the similarity engine when available and falls back to
        token-overlap matching when the engine is missing, fails, or finds
        nothing above the threshold.
        """
        session_id = session_id or self._settings.default_session_id
        if similarity_threshold is None:
            similarity_threshold = self._similarity.low_similarity * 0.9

        entries = self._session_entries(session_id)
        if not entries:
            return None

        if self._similarity_engine is not None:
            try:
                matches = await self._rank(text, entries, len(entries), similarity_threshold)
            except Exception as e:
                logger.warning("similarity_search_failed", session_id=session_id, error=str(e))
                matches = []
            if matches:
                best = self._entry_for(matches[0].text, entries)
                if best is not None:
                    self._remember_similarity(text, best.id, matches[0].score)
                    return VerificationSearchResult.from_entry(best, matches[0].score)

        return self._text_search(text, entries)

    def _text_search(
        self, text: str, entries: list[VerificationEntry]
    ) -> VerificationSearchResult | None:
        exact = self._entry_for(text, entries)
        if exact is not None:
            return VerificationSearchResult.from_entry(exact, 1.0)

        scored = sorted(
            ((text_match_score(text, entry.text), entry) for entry in entries),
            key=lambda pair: pair[0],
            reverse=True,
        )
        threshold = self._similarity.text_match * 0.9
        if scored and scored[0][0] >= threshold:
            score, entry = scored[0]
            logger.debug("text_match_found", entry_id=entry.id, similarity=round(score, 3))
            return VerificationSearchResult.from_entry(entry, score)
        return None

    def get_session_verifications(
        self,
        session_id: str | None = None,
        offset: int = 0,
        limit: int = 100,
        status_filter: VerificationStatus | None = None,
    ) -> list[VerificationEntry]:
        """List a session's verifications, most recent first."""
        session_id = session_id or self._settings.default_session_id
        entries = self._session_entries(session_id)
        if status_filter is not None:
            entries = [entry for entry in entries if entry.status == status_filter]
        entries.sort(key=lambda entry: entry.timestamp, reverse=True)
        return [entry.model_copy(deep=True) for entry in entries[offset : offset + limit]]

    async def search_similar_verifications(
        self,
        text: str,
        session_id: str | None = None,
        limit: int = 5,
        min_similarity: float | None = None,
    ) -> list[VerificationSearchResult]:
        """Rank a session's verifications by similarity to ``text``.

        Returns an empty list when no similarity engine is configured or the
        engine fails.
        """
        session_id = session_id or self._settings.default_session_id
        if min_similarity is None:
            min_similarity = self._similarity.medium_similarity
        if self._similarity_engine is None:
            return []

        entries = self._session_entries(session_id)
        if not entries:
            return []

        try:
            matches = await self._rank(text, entries, len(entries), min_similarity)
        except Exception as e:
            logger.warning("similar_verifications_search_failed", session_id=session_id, error=str(e))
            return []

        results = []
        for match in matches:
            entry = self._entry_for(match.text, entries)
            if entry is not None:
                results.append(VerificationSearchResult.from_entry(entry, match.score))
        results.sort(key=lambda result: result.similarity, reverse=True)
        return results[:limit]

    def clear_session(self, session_id: str) -> int:
        """Drop every verification of a session. Returns the number removed."""
        ids = self._session_index.pop(session_id, set())
        for entry_id in ids:
            self._entries.pop(entry_id, None)
        self._session_locks.pop(session_id, None)
        if ids:
            logger.info("verification_session_cleared", session_id=session_id, count=len(ids))
        return len(ids)

    def clear_all(self) -> None:
        self._entries.clear()
        self._session_index.clear()
        self._similarity_memo.clear()
        self._session_locks.clear()
        logger.info("verification_memory_cleared")

    def get_stats(self) -> MemoryStats:
        entries_by_status = {status.value: 0 for status in VerificationStatus}
        for entry in self._entries.values():
            entries_by_status[entry.status.value] += 1
        return MemoryStats(
            total_entries=len(self._entries),
            session_count=len(self._session_index),
            cache_size=self._memo_size(),
            entries_by_status=entries_by_status,
        )


__all__ = ["VerificationMemory", "normalize_text", "text_match_score"]
