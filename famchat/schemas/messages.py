from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from ..config import MAX_ID
from typing import Optional

class MessageIn(BaseModel):
    receiver_id: int = Field(gt=0, le=MAX_ID)
    encrypted_content: str = Field(min_length=1)
    iv: str = Field(min_length=1)

class MessageOut(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    encrypted_content: str
    iv: str
    timestamp: datetime
    read_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class UnreadCountOut(BaseModel):
    count: int
