"""
Actor context passed explicitly into every workflow operation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum as PyEnum
from typing import FrozenSet, Optional
from uuid import UUID


class Role(str, PyEnum):
    ADMIN = "admin"
    LOGISTICA = "logistica"
    ARMAZEM = "armazem"
    CLIENTE = "cliente"
    REPRESENTANTE = "representante"

    @classmethod
    def parse(cls, value) -> "Role":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class ActorContext:
    """Already-authenticated caller.

    ``linked_entity_id`` is the warehouse id for ``armazem`` users, the client
    id for ``cliente`` users and the representative id for ``representante``
    users. Representatives also carry the ids of the clients they serve.
    """
    user_id: Optional[UUID]
    role: Role
    linked_entity_id: Optional[UUID] = None
    represented_client_ids: FrozenSet[UUID] = field(default_factory=frozenset)
    email: Optional[str] = None

    def is_warehouse_operator_for(self, armazem_id) -> bool:
        return (
            self.role == Role.ARMAZEM
            and self.linked_entity_id is not None
            and self.linked_entity_id == armazem_id
        )

    def can_view(self, cliente_id, armazem_id) -> bool:
        if self.role in (Role.ADMIN, Role.LOGISTICA):
            return True
        if self.role == Role.ARMAZEM:
            return self.linked_entity_id is not None and self.linked_entity_id == armazem_id
        if self.role == Role.CLIENTE:
            return self.linked_entity_id is not None and self.linked_entity_id == cliente_id
        if self.role == Role.REPRESENTANTE:
            return cliente_id in self.represented_client_ids
        raise ValueError(f"Unhandled role: {self.role!r}")
