from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime
from tableforge.core.entities import (
    Field, FieldOrder, TableCollaboration, TableConfiguration, TableMethods,
    TableStyle, TableType, TableVisibility
)
from tableforge.core.pagination import PaginationMeta


class TableCreate(BaseModel):
    name: str
    description: Optional[str] = None
    logo: Optional[str] = None
    style: Optional[TableStyle] = None
    visibility: Optional[TableVisibility] = None
    collaboration: Optional[TableCollaboration] = None


class TableConfigurationUpdate(BaseModel):
    style: Optional[TableStyle] = None
    visibility: Optional[TableVisibility] = None
    collaboration: Optional[TableCollaboration] = None
    administrators: Optional[List[str]] = None
    field_order: Optional[FieldOrder] = None


class TableUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    configuration: Optional[TableConfigurationUpdate] = None
    methods: Optional[TableMethods] = None


class TableResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    logo: Optional[str] = None
    type: TableType
    fields: List[Field]
    configuration: TableConfiguration
    methods: TableMethods
    synthesized_schema: Dict[str, Any]
    trashed: bool
    trashed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TableListResponse(BaseModel):
    data: List[TableResponse]
    meta: PaginationMeta
