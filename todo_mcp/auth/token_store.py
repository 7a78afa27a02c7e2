"""
Token storage.

Two stores with different lifetimes:
- TokenStore: the single bearer token of the local operator, persisted to a
  file so it survives process restarts.
- HandshakeContext: ephemeral key/value slots for one OAuth
  authorization-code handshake (state, nonce, resulting tokens).
"""
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple
import logging
import time

logger = logging.getLogger(__name__)

DEFAULT_HANDSHAKE_TTL = 60 * 60


class TokenStore:
    """File-backed store for the current bearer token."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def save_token(self, token: str) -> None:
        """Overwrite the persisted token."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token.strip(), encoding="utf-8")
        logger.info(f"Saved bearer token to {self.path}")

    def get_stored_token(self) -> Optional[str]:
        if not self.path.exists():
            return None
        token = self.path.read_text(encoding="utf-8").strip()
        return token or None

    def clear_token(self) -> None:
        """Delete the persisted token; a missing file is not an error."""
        try:
            self.path.unlink()
            logger.info(f"Cleared bearer token at {self.path}")
        except FileNotFoundError:
            pass


class HandshakeContext:
    """Key/value slots scoped to a single OAuth handshake."""

    def __init__(self):
        self._items: Dict[str, Any] = {}

    def put(self, key: str, value: Any) -> None:
        self._items[key] = value

    def get(self, key: str) -> Optional[Any]:
        return self._items.get(key)

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._items


class HandshakeRegistry:
    """
    Pending and completed handshakes of one web process, keyed by an opaque
    handshake id (the OAuth ``state`` value once login has been initiated).

    Entries older than ``ttl`` seconds are evicted on the next register or
    lookup, whether or not the handshake completed.
    """

    def __init__(self, ttl: float = DEFAULT_HANDSHAKE_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._contexts: Dict[str, Tuple[float, HandshakeContext]] = {}

    def register(self, handshake_id: str, context: HandshakeContext) -> None:
        self.evict_expired()
        self._contexts[handshake_id] = (self._clock(), context)

    def get(self, handshake_id: Optional[str]) -> Optional[HandshakeContext]:
        self.evict_expired()
        if not handshake_id:
            return None
        entry = self._contexts.get(handshake_id)
        return entry[1] if entry else None

    def evict_expired(self) -> None:
        cutoff = self._clock() - self.ttl
        expired = [key for key, (created, _) in self._contexts.items() if created <= cutoff]
        for key in expired:
            self.discard(key)
        if expired:
            logger.debug(f"Evicted {len(expired)} expired handshake(s)")

    def discard(self, handshake_id: Optional[str]) -> None:
        if handshake_id:
            entry = self._contexts.pop(handshake_id, None)
            if entry is not None:
                entry[1].clear()

    def __len__(self) -> int:
        return len(self._contexts)
