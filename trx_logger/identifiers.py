"""Deterministic test identifiers and per-report execution ids."""

import hashlib
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from trx_logger.models.result import TestResult


def guid_from_string(data: str) -> uuid.UUID:
    """Derive a stable GUID from a string.

    The string is hashed as UTF-16LE with SHA-1 and the first 128 bits of the
    digest are read with the little-endian GUID field layout, so the same name
    maps to the same id across runs and platforms.
    """
    digest = hashlib.sha1(data.encode("utf-16-le")).digest()
    return uuid.UUID(bytes_le=digest[:16])


@dataclass(kw_only=True)
class ExecutionIdCache:
    """Random execution ids keyed by result identity.

    The same result object always maps to the same id within one cache, which
    lets every report section reference a result consistently. Equal but
    distinct result objects get distinct ids.
    """

    id_factory: Callable[[], uuid.UUID] = uuid.uuid4
    # Holding the result keeps its id() from being reused while cached.
    _ids: dict[int, tuple[TestResult, uuid.UUID]] = field(
        default_factory=dict, init=False, repr=False
    )

    def get(self, result: TestResult) -> uuid.UUID:
        """Return the execution id for a result, generating it on first use."""
        if (entry := self._ids.get(id(result))) is None:
            entry = self._ids[id(result)] = (result, self.id_factory())
        return entry[1]

    def __len__(self) -> int:
        return len(self._ids)
