# app/rollcall/api/schemas/user.py
from pydantic import BaseModel, ConfigDict
from typing import Optional
from uuid import UUID


class PrincipalResponse(BaseModel):
    id: UUID
    role: str

    model_config = ConfigDict(from_attributes=True)


# Claims we rely on in the identity provider's access tokens
class TokenData(BaseModel):
    sub: UUID
    role: str
    exp: Optional[int] = None
    jti: Optional[str] = None
