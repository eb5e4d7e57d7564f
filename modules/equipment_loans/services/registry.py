"""Registration of people and equipment."""

from __future__ import annotations

import logging
import uuid

from ..exceptions import ValidationError
from ..models import Equipment, Person, PersonRole
from ..repository import LoanStores

logger = logging.getLogger(__name__)


def _required(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


class RegistryService:
    def __init__(self, stores: LoanStores) -> None:
        self.stores = stores

    def add_person(self, name: str, email: str, role: object) -> Person:
        email = _required(email, "email")
        if "@" not in email:
            raise ValidationError(f"Invalid email address: {email}")
        if not isinstance(role, PersonRole) and not PersonRole.has_value(role):
            raise ValidationError(f"Unknown role: {role!r}")
        role = PersonRole(role)
        person = Person(id=uuid.uuid4().hex, name=_required(name, "name"), email=email, role=role)
        self.stores.people.add(person)
        logger.info("[loans] registered %s %s", role.value.lower(), person.id)
        return person

    def add_equipment(self, name: str, category: str) -> Equipment:
        equipment = Equipment(
            id=uuid.uuid4().hex,
            name=_required(name, "name"),
            category=_required(category, "category"),
        )
        self.stores.equipment.add(equipment)
        logger.info("[loans] registered equipment %s (%s)", equipment.id, equipment.category)
        return equipment


__all__ = ["RegistryService"]
