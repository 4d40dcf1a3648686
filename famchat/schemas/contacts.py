from datetime import datetime
from pydantic import BaseModel, field_validator
from typing import Optional

class ContactAddIn(BaseModel):
    username: str

    @field_validator('username')
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Username is required')
        return v

class ContactAddOut(BaseModel):
    ok: bool = True
    message: str = 'Contact request sent'
    contact_id: int

class ContactOut(BaseModel):
    """Public profile of the other side of an edge, plus when the edge was made."""
    id: int
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    public_key: Optional[str] = None
    last_seen: Optional[datetime] = None
    created_at: Optional[datetime] = None
