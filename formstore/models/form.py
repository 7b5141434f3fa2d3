from datetime import datetime
from pydantic import BaseModel
from typing import Optional

class Form(BaseModel):
    id: Optional[int] = None
    user_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    form_version: Optional[int] = None

class FormInstance(BaseModel):
    id: Optional[int] = None
    form_id: int
    fields: str  # opaque serialized payload
    created_at: Optional[datetime] = None
    form_version: int
