from pydantic import BaseModel
from typing import Any, Dict, List
from tableforge.core.entities import ReactionType
from tableforge.core.pagination import PaginationMeta


class RowListResponse(BaseModel):
    data: List[Dict[str, Any]]
    meta: PaginationMeta


class RowReaction(BaseModel):
    type: ReactionType
    field: str


class RowEvaluation(BaseModel):
    value: float
    field: str
