from pydantic import BaseModel, ConfigDict
from typing import Optional
from uuid import UUID

from core.actor import Role


class UserResponse(BaseModel):
    id: UUID
    email: str
    username: str
    role: Role
    is_active: bool
    armazem_id: Optional[UUID] = None
    cliente_id: Optional[UUID] = None
    representante_id: Optional[UUID] = None
    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role
    user: str
