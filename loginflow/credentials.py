"""Read-only credential repository backing the demo login."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol


@dataclass(frozen=True)
class CredentialRecord:
    email: str
    username: str
    password: str
    display_name: str

    def public_profile(self) -> dict[str, str]:
        """Fields that may leave the server; never includes the password."""
        return {"email": self.email, "username": self.username}


DEMO_ACCOUNTS: tuple[CredentialRecord, ...] = (
    CredentialRecord(
        email="demo@example.com",
        username="demo",
        password="password123",
        display_name="Demo User",
    ),
    CredentialRecord(
        email="admin@example.com",
        username="admin",
        password="admin123",
        display_name="Administrator",
    ),
)


class CredentialRepository(Protocol):
    def find(self, identifier: str) -> CredentialRecord | None:
        ...


class InMemoryCredentialRepository:
    """Static table indexed by both the email and the username alias."""

    def __init__(self, records: Iterable[CredentialRecord] = DEMO_ACCOUNTS) -> None:
        index: dict[str, CredentialRecord] = {}
        for record in records:
            for alias in (record.email, record.username):
                key = _normalize(alias)
                if key in index and index[key] != record:
                    raise ValueError(f"Alias {alias!r} is claimed by more than one account")
                index[key] = record
        self._index = index

    def find(self, identifier: str) -> CredentialRecord | None:
        return self._index.get(_normalize(identifier))

    def __len__(self) -> int:
        return len(set(self._index.values()))


def _normalize(alias: str) -> str:
    return alias.strip().casefold()


__all__ = [
    "CredentialRecord",
    "CredentialRepository",
    "DEMO_ACCOUNTS",
    "InMemoryCredentialRepository",
]
