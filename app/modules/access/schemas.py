from pydantic import BaseModel
from typing import Optional


class EntityAccessResponse(BaseModel):
    entity_type: str
    entity_id: str
    can_view: bool
    can_edit: bool = False
    project_id: Optional[str] = None
