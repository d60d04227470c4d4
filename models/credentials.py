"""Rotating credential slot tracked by the key rotation manager."""

from __future__ import annotations

from dataclasses import dataclass


def mask_secret(secret: str) -> str:
    """Render a key for logs and stats without leaking it."""
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}…{secret[-4:]}"


@dataclass
class CredentialRecord:
    """Usage state for one credential.

    ``last_used_at`` / ``blocked_until`` are clock readings in seconds;
    ``None`` means "never".
    """

    identifier: str
    last_used_at: float | None = None
    request_count_in_window: int = 0
    is_blocked: bool = False
    blocked_until: float | None = None

    def snapshot(self, now: float) -> dict:
        """Masked, JSON-ready view used by stats endpoints."""
        remaining = 0.0
        if self.is_blocked and self.blocked_until is not None:
            remaining = max(0.0, self.blocked_until - now)
        return {
            "key": mask_secret(self.identifier),
            "requestCountInWindow": self.request_count_in_window,
            "isBlocked": self.is_blocked,
            "blockedForSeconds": round(remaining, 1),
            "secondsSinceLastUse": (
                round(now - self.last_used_at, 1) if self.last_used_at is not None else None
            ),
        }
