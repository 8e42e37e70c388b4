"""Salt-keyed codec between numeric link identifiers and short tokens.

Tokens are produced with the Hashids algorithm: the salt shuffles the
alphabet, the identifier is written positionally in base-N over the
shuffled alphabet, and guard characters are mixed in so that consecutive
identifiers do not produce neighbouring tokens.

Flow Diagram — generate() / reverse()
=====================================
::
    id ──► HashCodec(salt) ──► Hashids.encode ──► token
                 │
                 │ shuffled alphabet, separators, guards
                 │ (built once in __init__, read-only afterwards)
                 ▼
    token ──► Hashids.decode ──► exactly one number? ──► id
                                        │
                                        └── no ──► None

How to Use
===========
**Step 1 — Build once at startup**::
    codec = HashCodec(settings.HASH_SALT, min_length=settings.HASH_MIN_LENGTH)

**Step 2 — Encode and decode**::
    token = codec.generate(7)
    codec.reverse(token)       # 7
    codec.reverse("nope!!")    # None

**Functional form** (resolves a shared codec per salt)::
    token = generate("my salt", 7)
    reverse("my salt", token)  # 7

Key Behaviours
===============
- ``generate`` is pure: the same (salt, id) always yields the same token.
- ``reverse`` never raises; malformed or foreign tokens yield ``None``.
- A token decodes only if re-encoding its numbers reproduces it exactly,
  so tokens made under another salt are rejected.
- Changing the salt invalidates every previously issued token.
- The functional form is meant for the few configured salts a process uses.
  It keeps at most MAX_REGISTERED_CODECS codecs and drops the oldest when a
  new salt arrives past that limit.
"""

import logging
import threading

from hashids import Hashids

__all__ = ["MAX_REGISTERED_CODECS", "HashCodec", "codec_for", "generate", "reverse"]

logger = logging.getLogger(__name__)

MAX_REGISTERED_CODECS = 32

_registry: dict[tuple[str, int], "HashCodec"] = {}
_registry_lock = threading.Lock()


class HashCodec:
    """Bijection between non-negative integers and tokens under one salt."""

    def __init__(self, salt: str, min_length: int = 0) -> None:
        if not isinstance(salt, str) or not salt:
            raise ValueError("salt must be a non-empty string")
        if min_length < 0:
            raise ValueError(f"min_length must not be negative, got {min_length!r}")
        self._salt = salt
        self._min_length = min_length
        self._hashids = Hashids(salt=salt, min_length=min_length)

    @property
    def min_length(self) -> int:
        return self._min_length

    def generate(self, link_id: int) -> str:
        """Encode ``link_id`` into a token.

        Raises:
            TypeError: If ``link_id`` is not an integer.
            ValueError: If ``link_id`` is negative.
        """
        if isinstance(link_id, bool) or not isinstance(link_id, int):
            raise TypeError(f"link_id must be an integer, got {type(link_id).__name__}")
        if link_id < 0:
            raise ValueError(f"link_id must be non-negative, got {link_id}")
        return self._hashids.encode(link_id)

    def reverse(self, token: str) -> int | None:
        """Decode ``token`` back into the identifier it was generated from.

        Returns ``None`` when the token is empty, uses characters outside the
        alphabet, carries zero or several numbers, or was not produced under
        this codec's salt.
        """
        if not isinstance(token, str) or not token:
            return None
        try:
            numbers = self._hashids.decode(token)
        except (ValueError, TypeError, IndexError):
            numbers = ()
        if len(numbers) != 1 or self._hashids.encode(numbers[0]) != token:
            logger.warning(f"Invalid token provided: {token!r}")
            return None
        return numbers[0]

    def __repr__(self) -> str:
        return f"<HashCodec(min_length={self._min_length})>"


def codec_for(salt: str, min_length: int = 0) -> HashCodec:
    """Return the shared codec for ``salt``, building it on first use.

    The codec is fully constructed before it is published to the registry,
    and construction happens under a lock, so concurrent first calls all
    observe the same instance.
    """
    key = (salt, min_length)
    codec = _registry.get(key)
    if codec is not None:
        return codec
    with _registry_lock:
        codec = _registry.get(key)
        if codec is None:
            codec = HashCodec(salt, min_length=min_length)
            if len(_registry) >= MAX_REGISTERED_CODECS:
                del _registry[next(iter(_registry))]
            _registry[key] = codec
    return codec


def generate(salt: str, link_id: int, min_length: int = 0) -> str:
    return codec_for(salt, min_length).generate(link_id)


def reverse(salt: str, token: str, min_length: int = 0) -> int | None:
    return codec_for(salt, min_length).reverse(token)
