from pydantic import BaseModel
from typing import Optional, List


class GroupSummary(BaseModel):
    id: str
    name: str
    slug: str


class MeResponse(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None
    group: Optional[GroupSummary] = None
    permissions: List[str]
