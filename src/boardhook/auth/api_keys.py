"""API key generation and Bearer-token authentication."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Callable

from boardhook.auth.exceptions import InvalidApiKeyError

if TYPE_CHECKING:
    from boardhook.background import BackgroundRunner
    from boardhook.board_store import BoardStore

logger = logging.getLogger("boardhook.auth")

KEY_PREFIX = "ak_"
KEY_LENGTH = 48
DISPLAY_PREFIX_LENGTH = 8  # "ak_aBcDe"
CHARSET = string.ascii_letters + string.digits

MISSING_HEADER_MESSAGE = "Missing or invalid Authorization header. Use: Bearer ak_..."
INVALID_KEY_MESSAGE = "Invalid or expired API key"


@dataclass(frozen=True)
class GeneratedApiKey:
    """A freshly minted key. The plaintext is shown to the user exactly once."""

    key: str
    key_hash: str
    key_prefix: str


@dataclass(frozen=True)
class ApiCaller:
    """Identity resolved from a valid API key."""

    workspace_id: str
    api_key_id: str


def hash_api_key(key: str) -> str:
    """SHA-256 hex digest of an API key."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def generate_api_key() -> GeneratedApiKey:
    """Generate a new random API key with its hash and display prefix."""
    key = KEY_PREFIX + "".join(secrets.choice(CHARSET) for _ in range(KEY_LENGTH))
    return GeneratedApiKey(
        key=key,
        key_hash=hash_api_key(key),
        key_prefix=key[:DISPLAY_PREFIX_LENGTH],
    )


class ApiKeyAuthenticator:
    """Resolves ``Authorization: Bearer ak_...`` headers to a workspace.

    Keys are looked up by their display prefix and verified by hash. A
    successful lookup records ``last_used_at`` as a background task so a
    failing write never rejects an otherwise valid request.
    """

    def __init__(
        self,
        store: BoardStore,
        runner: BackgroundRunner | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._runner = runner
        self._clock = clock or (lambda: datetime.now(UTC))

    def authenticate(self, authorization: str | None) -> ApiCaller:
        """Validate an Authorization header value.

        Raises:
            InvalidApiKeyError: If the header is missing/malformed or the key is
                unknown or expired.
        """
        if not authorization or not authorization.startswith("Bearer "):
            raise InvalidApiKeyError(MISSING_HEADER_MESSAGE)

        caller = self.validate(authorization[len("Bearer ") :])
        if caller is None:
            raise InvalidApiKeyError(INVALID_KEY_MESSAGE)

        if self._runner is not None:
            self._runner.submit("touch_api_key", self._store.touch_api_key, caller.api_key_id)
        return caller

    def validate(self, key: str) -> ApiCaller | None:
        """Return the caller for a plaintext key, or None if it is not valid."""
        if not key.startswith(KEY_PREFIX):
            return None

        candidates = self._store.find_api_keys_by_prefix(key[:DISPLAY_PREFIX_LENGTH])
        if not candidates:
            return None

        key_hash = hash_api_key(key)
        for candidate in candidates:
            if not hmac.compare_digest(candidate.key_hash, key_hash):
                continue
            if candidate.expires_at is not None and self._is_expired(candidate.expires_at):
                logger.info("Rejected expired API key %s", candidate.key_prefix)
                return None
            return ApiCaller(workspace_id=candidate.workspace_id, api_key_id=candidate.id)

        return None

    def _is_expired(self, expires_at: datetime) -> bool:
        # SQLite returns naive datetimes; they are stored as UTC
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at < self._clock()
