"""Versioned cache of boolean membership relations."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from ohako_client.domain.errors import StaleMutationError
from ohako_client.domain.models import OptimisticWrite, RelationKind

_Key = tuple[RelationKind, str]


@dataclass
class MembershipCache:
    """Tracks track-in-playlist and user-is-followed relations.

    A missing key means the relation is unknown, which is different from
    ``False``. Every write advances a per-key version counter so that a
    rollback issued for an older write can detect that it has been
    superseded.
    """

    _values: dict[_Key, bool] = field(default_factory=dict, init=False)
    _pending: set[_Key] = field(default_factory=set, init=False)
    _versions: dict[_Key, int] = field(default_factory=dict, init=False)

    def get(self, kind: RelationKind, subject_id: object) -> bool | None:
        """Return the cached value, or None if it is unknown or pending."""
        return self._values.get((kind, str(subject_id)))

    def is_pending(self, kind: RelationKind, subject_id: object) -> bool:
        return (kind, str(subject_id)) in self._pending

    def version(self, kind: RelationKind, subject_id: object) -> int:
        return self._versions.get((kind, str(subject_id)), 0)

    def known(self, kind: RelationKind) -> dict[str, bool]:
        """Return every resolved entry for a relation kind."""
        return {
            subject_id: value
            for (entry_kind, subject_id), value in self._values.items()
            if entry_kind is kind
        }

    def hydrate(self, kind: RelationKind, subject_ids: Iterable[object]) -> None:
        """Mark keys as awaiting an authoritative value."""
        for subject_id in subject_ids:
            key = (kind, str(subject_id))
            if key not in self._values:
                self._pending.add(key)

    def set_many(self, kind: RelationKind, mapping: Mapping[object, bool]) -> None:
        """Overwrite entries from an authoritative server response."""
        for subject_id, value in mapping.items():
            key = (kind, str(subject_id))
            self._values[key] = bool(value)
            self._pending.discard(key)
            self._bump(key)

    def set_optimistic(
        self, kind: RelationKind, subject_id: object, value: bool
    ) -> OptimisticWrite:
        """Write a value ahead of server confirmation."""
        key = (kind, str(subject_id))
        previous = self._values.get(key)
        self._values[key] = value
        self._pending.discard(key)
        return OptimisticWrite(
            kind=kind,
            subject_id=key[1],
            previous=previous,
            value=value,
            version=self._bump(key),
        )

    def rollback(
        self,
        kind: RelationKind,
        subject_id: object,
        previous: bool | None,
        *,
        version: int,
    ) -> None:
        """Restore a value after a failed mutation.

        Raises StaleMutationError without writing when the key has been
        written since ``version`` was issued.
        """
        key = (kind, str(subject_id))
        current = self._versions.get(key, 0)
        if current != version:
            raise StaleMutationError(
                f"{kind.value}:{key[1]} is at version {current}, "
                f"rollback was for {version}"
            )
        if previous is None:
            self._values.pop(key, None)
        else:
            self._values[key] = previous

    def release(self, kind: RelationKind, subject_ids: Iterable[object]) -> None:
        """Forget entries no view is showing anymore.

        Released keys advance their version, so a rollback for a write made
        before the release is stale and leaves the key unknown.
        """
        for subject_id in subject_ids:
            key = (kind, str(subject_id))
            self._values.pop(key, None)
            self._pending.discard(key)
            self._bump(key)

    def clear(self) -> None:
        """Forget every entry and invalidate outstanding rollbacks."""
        self._values.clear()
        self._pending.clear()
        for key in self._versions:
            self._versions[key] += 1

    def _bump(self, key: _Key) -> int:
        version = self._versions.get(key, 0) + 1
        self._versions[key] = version
        return version
