from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from tableforge.core.entities import FieldConfiguration, FieldType


class FieldCreate(BaseModel):
    name: str
    type: FieldType
    configuration: FieldConfiguration = FieldConfiguration()


class FieldUpdate(BaseModel):
    name: Optional[str] = None
    configuration: Optional[FieldConfiguration] = None


class CategoryCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    label: str
    parent_id: Optional[str] = Field(default=None, alias="parentId")


class FieldResponse(BaseModel):
    id: str
    name: str
    slug: str
    type: FieldType
    configuration: FieldConfiguration
    trashed: bool
    trashed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CategoryNodeResponse(BaseModel):
    id: str
    label: str
    parent_id: Optional[str] = None


class CategoryResponse(BaseModel):
    node: CategoryNodeResponse
    field: FieldResponse
