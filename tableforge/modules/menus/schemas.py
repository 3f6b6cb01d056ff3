from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from tableforge.core.entities import MenuItemType
from tableforge.core.pagination import PaginationMeta


class MenuCreate(BaseModel):
    name: str
    type: MenuItemType
    table: Optional[str] = None
    parent: Optional[str] = None
    url: Optional[str] = None
    html: Optional[str] = None


class MenuUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[MenuItemType] = None
    table: Optional[str] = None
    parent: Optional[str] = None
    url: Optional[str] = None
    html: Optional[str] = None


class MenuResponse(BaseModel):
    id: str
    name: str
    slug: str
    type: MenuItemType
    table: Optional[str] = None
    parent: Optional[str] = None
    url: Optional[str] = None
    html: Optional[str] = None
    trashed: bool
    trashed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MenuListResponse(BaseModel):
    data: List[MenuResponse]
    meta: PaginationMeta
