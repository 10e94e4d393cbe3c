"""Stable, time-ordered upload identities per source file."""
import os
import secrets
import threading
import uuid
from typing import Dict, Optional

_MAX_TIMESTAMP_MS = (1 << 48) - 1
_MAX_SEQUENCE = (1 << 12) - 1


def uuid7_from_timestamp(seconds: int, sequence: int = 0) -> uuid.UUID:
    """
    Builds a version 7 UUID for a unix timestamp in seconds.

    Layout: 48-bit millisecond timestamp, version, 12-bit sequence (orders
    identifiers created within the same second), variant, 62 random bits.
    The sequence saturates at 4095: identifiers past that within one second
    still sort after the earlier ones but not among themselves.
    """
    unix_ts_ms = min(max(int(seconds), 0) * 1000, _MAX_TIMESTAMP_MS)
    value = unix_ts_ms << 80
    value |= 0x7 << 76
    value |= min(max(sequence, 0), _MAX_SEQUENCE) << 64
    value |= 0b10 << 62
    value |= secrets.randbits(62)
    return uuid.UUID(int=value)


class IdentityCache:
    """
    Maps absolute source paths to upload identities for the process lifetime.

    Once a path has an identity it keeps it, whatever creation time is passed
    later, so repeated notifications overwrite the same object. Entries are
    never evicted and are lost on restart.
    """

    def __init__(self):
        self._identities: Dict[str, uuid.UUID] = {}
        self._sequences: Dict[int, int] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _normalize(path) -> str:
        return os.path.abspath(os.fspath(path))

    def identity_for(self, path, creation_time: float) -> uuid.UUID:
        key = self._normalize(path)
        with self._lock:
            identity = self._identities.get(key)
            if identity is None:
                second = int(creation_time)
                sequence = self._sequences.get(second, 0)
                self._sequences[second] = sequence + 1
                identity = uuid7_from_timestamp(second, sequence)
                self._identities[key] = identity
            return identity

    def get(self, path) -> Optional[uuid.UUID]:
        with self._lock:
            return self._identities.get(self._normalize(path))

    def __contains__(self, path) -> bool:
        return self.get(path) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._identities)
