"""Equipment dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .enums import EquipmentStatus


@dataclass(slots=True)
class Equipment:
    id: str
    name: str
    category: str
    status: EquipmentStatus = EquipmentStatus.AVAILABLE

    def to_row(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "status": self.status.value,
        }

    @classmethod
    def from_row(cls, row: Dict[str, object]) -> "Equipment":
        return cls(
            id=row["id"],
            name=row["name"],
            category=row["category"],
            status=EquipmentStatus(row.get("status") or EquipmentStatus.AVAILABLE.value),
        )
