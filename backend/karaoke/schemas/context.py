from uuid import UUID
from typing import Optional
from pydantic import BaseModel


class SessionContextPayload(BaseModel):
    user_id: Optional[UUID] = None
    session_id: Optional[UUID] = None
