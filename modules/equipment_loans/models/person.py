"""Person dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .enums import PersonRole


@dataclass(slots=True)
class Person:
    id: str
    name: str
    email: str
    role: PersonRole

    @property
    def can_request(self) -> bool:
        return self.role is PersonRole.REQUESTER

    @property
    def can_approve(self) -> bool:
        return self.role is PersonRole.APPROVER

    def to_row(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
        }

    @classmethod
    def from_row(cls, row: Dict[str, object]) -> "Person":
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            role=PersonRole(row["role"]),
        )
