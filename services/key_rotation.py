"""Key rotation for rate-limited generation backends.

Tracks a pool of API keys and hands out the least-loaded one.  Window
accounting is lazy: a key's counter is treated as reset once a full window
has elapsed since its last use, and a blocked key is released once its
block expires.  Both checks run at selection time, so there is no timer
and tests can drive everything through an injected clock.

All public methods take the same re-entrant lock, so threadpool callers see
each read-check-then-write as one critical section.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Iterable

from models.credentials import CredentialRecord, mask_secret

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = 11  # requests per window per key
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_BLOCK_SECONDS = 60.0


class KeyRotationManager:
    """Least-recently-used selection over a pool of rotating credentials."""

    def __init__(
        self,
        keys: Iterable[str],
        *,
        rate_limit: int = DEFAULT_RATE_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        block_seconds: float = DEFAULT_BLOCK_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate_limit < 1:
            raise ValueError("rate_limit must be at least 1")
        self._lock = threading.RLock()
        self._clock = clock
        self.rate_limit = rate_limit
        self.window_seconds = window_seconds
        self.block_seconds = block_seconds
        # Insertion-ordered; duplicates in the configured list collapse to one slot.
        self._records: dict[str, CredentialRecord] = {}
        for key in keys:
            key = key.strip()
            if key and key not in self._records:
                self._records[key] = CredentialRecord(identifier=key)

    @property
    def size(self) -> int:
        return len(self._records)

    # -- selection -----------------------------------------------------------

    def select_credential(self) -> str | None:
        """Return the eligible key with the fewest requests in its window.

        Ties go to the least recently used key (never-used keys first).
        Returns ``None`` when every key is blocked or at its window limit,
        and always for an empty pool.
        """
        with self._lock:
            now = self._clock()
            eligible = [r for r in self._records.values() if self._is_available(r, now)]
            if not eligible:
                if self._records:
                    logger.warning(
                        "All %d API keys are rate limited or blocked", len(self._records)
                    )
                return None
            chosen = min(
                eligible,
                key=lambda r: (
                    r.request_count_in_window,
                    r.last_used_at if r.last_used_at is not None else -math.inf,
                ),
            )
            return chosen.identifier

    def record_use(self, identifier: str) -> None:
        """Count one request against *identifier*; block it when the limit is reached."""
        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                logger.warning("record_use for unknown key %s", mask_secret(identifier))
                return
            now = self._clock()
            self._refresh(record, now)
            record.request_count_in_window += 1
            record.last_used_at = now
            if record.request_count_in_window >= self.rate_limit:
                record.is_blocked = True
                record.blocked_until = now + self.block_seconds
                logger.info(
                    "API key %s reached %d requests, blocked for %.0fs",
                    mask_secret(identifier), self.rate_limit, self.block_seconds,
                )

    def mark_failed(self, identifier: str, block_seconds: float | None = None) -> None:
        """Force-block *identifier*, e.g. after an explicit quota error."""
        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                logger.warning("mark_failed for unknown key %s", mask_secret(identifier))
                return
            duration = self.block_seconds if block_seconds is None else block_seconds
            now = self._clock()
            record.is_blocked = True
            record.blocked_until = now + duration
            record.request_count_in_window = self.rate_limit
            logger.warning(
                "API key %s marked as failed, blocked for %.0fs",
                mask_secret(identifier), duration,
            )

    # -- availability --------------------------------------------------------

    def has_available(self) -> bool:
        """True if at least one key could serve a request right now."""
        with self._lock:
            now = self._clock()
            return any(self._is_available(r, now) for r in self._records.values())

    def estimated_wait_ms(self) -> int:
        """Milliseconds until the earliest blocked key is released; 0 if one is free now."""
        with self._lock:
            now = self._clock()
            if any(self._is_available(r, now) for r in self._records.values()):
                return 0
            releases = [
                r.blocked_until
                for r in self._records.values()
                if r.is_blocked and r.blocked_until is not None
            ]
            if not releases:
                return 0
            return max(0, math.ceil((min(releases) - now) * 1000))

    # -- maintenance ---------------------------------------------------------

    def stats(self) -> list[dict]:
        """Masked usage snapshot for every key."""
        with self._lock:
            now = self._clock()
            for record in self._records.values():
                self._refresh(record, now)
            return [r.snapshot(now) for r in self._records.values()]

    def reset_all(self) -> None:
        """Forget all usage and blocks (admin / tests)."""
        with self._lock:
            for record in self._records.values():
                record.request_count_in_window = 0
                record.last_used_at = None
                record.is_blocked = False
                record.blocked_until = None
            logger.info("Reset usage for %d API keys", len(self._records))

    # -- internals -----------------------------------------------------------

    def _refresh(self, record: CredentialRecord, now: float) -> None:
        """Apply lazy block expiry and window reset to *record*."""
        if record.is_blocked and record.blocked_until is not None and now >= record.blocked_until:
            record.is_blocked = False
            record.blocked_until = None
            record.request_count_in_window = 0
            record.last_used_at = None
            logger.info("API key %s unblocked", mask_secret(record.identifier))
        if record.last_used_at is not None and now - record.last_used_at >= self.window_seconds:
            record.request_count_in_window = 0

    def _is_available(self, record: CredentialRecord, now: float) -> bool:
        self._refresh(record, now)
        return not record.is_blocked and record.request_count_in_window < self.rate_limit
