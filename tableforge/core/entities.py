"""
Domain entities shared by the schema engine, the access policy and the use cases.

Tables are the aggregate root for field membership: a Table holds its Field
list, a Field never points back at its table.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class FieldType(str, Enum):
    TEXT_SHORT = "TEXT_SHORT"
    TEXT_LONG = "TEXT_LONG"
    DROPDOWN = "DROPDOWN"
    DATE = "DATE"
    RELATIONSHIP = "RELATIONSHIP"
    FILE = "FILE"
    FIELD_GROUP = "FIELD_GROUP"
    REACTION = "REACTION"
    EVALUATION = "EVALUATION"
    CATEGORY = "CATEGORY"


class FieldFormat(str, Enum):
    # TEXT_SHORT
    ALPHA_NUMERIC = "ALPHA_NUMERIC"
    INTEGER = "INTEGER"
    DECIMAL = "DECIMAL"
    URL = "URL"
    EMAIL = "EMAIL"
    # DATE
    DD_MM_YYYY = "dd/MM/yyyy"
    MM_DD_YYYY = "MM/dd/yyyy"
    YYYY_MM_DD = "yyyy/MM/dd"
    DD_MM_YYYY_DASH = "dd-MM-yyyy"
    YYYY_MM_DD_DASH = "yyyy-MM-dd"
    DD_MM_YYYY_HH_MM_SS = "dd/MM/yyyy HH:mm:ss"
    YYYY_MM_DD_HH_MM_SS_DASH = "yyyy-MM-dd HH:mm:ss"


class TableType(str, Enum):
    TABLE = "TABLE"
    FIELD_GROUP = "FIELD_GROUP"


class TableStyle(str, Enum):
    LIST = "LIST"
    GALLERY = "GALLERY"
    DOCUMENT = "DOCUMENT"
    CARD = "CARD"
    MOSAIC = "MOSAIC"
    KANBAN = "KANBAN"
    FORUM = "FORUM"
    CALENDAR = "CALENDAR"
    GANTT = "GANTT"


class TableVisibility(str, Enum):
    PUBLIC = "PUBLIC"
    RESTRICTED = "RESTRICTED"
    OPEN = "OPEN"
    FORM = "FORM"
    PRIVATE = "PRIVATE"


class TableCollaboration(str, Enum):
    OPEN = "OPEN"
    RESTRICTED = "RESTRICTED"


class TablePermission(str, Enum):
    VIEW_TABLE = "VIEW_TABLE"
    VIEW_FIELD = "VIEW_FIELD"
    VIEW_ROW = "VIEW_ROW"
    CREATE_TABLE = "CREATE_TABLE"
    CREATE_ROW = "CREATE_ROW"
    CREATE_FIELD = "CREATE_FIELD"
    UPDATE_TABLE = "UPDATE_TABLE"
    UPDATE_FIELD = "UPDATE_FIELD"
    UPDATE_ROW = "UPDATE_ROW"
    REMOVE_TABLE = "REMOVE_TABLE"
    REMOVE_FIELD = "REMOVE_FIELD"
    REMOVE_ROW = "REMOVE_ROW"


class Role(str, Enum):
    MASTER = "MASTER"
    ADMINISTRATOR = "ADMINISTRATOR"
    MANAGER = "MANAGER"
    REGISTERED = "REGISTERED"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class MenuItemType(str, Enum):
    TABLE = "TABLE"
    PAGE = "PAGE"
    FORM = "FORM"
    EXTERNAL = "EXTERNAL"
    SEPARATOR = "SEPARATOR"


class ReactionType(str, Enum):
    LIKE = "LIKE"
    UNLIKE = "UNLIKE"


class SchemaType(str, Enum):
    STRING = "String"
    NUMBER = "Number"
    DATE = "Date"
    BOOLEAN = "Boolean"
    OBJECT_ID = "ObjectId"
    EMBEDDED = "Embedded"


class CategoryNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    children: List["CategoryNode"] = []


class EntityRef(BaseModel):
    id: str
    slug: Optional[str] = None


class RelationshipConfig(BaseModel):
    table: EntityRef
    field: EntityRef
    order: str = "asc"


class FieldConfiguration(BaseModel):
    required: bool = False
    multiple: bool = False
    format: Optional[FieldFormat] = None
    listing: bool = True
    filtering: bool = False
    default_value: Optional[str] = None
    relationship: Optional[RelationshipConfig] = None
    dropdown: Optional[List[str]] = None
    category: Optional[List[CategoryNode]] = None
    group: Optional[EntityRef] = None


class Field(BaseModel):
    id: str
    name: str
    slug: str
    type: FieldType
    configuration: FieldConfiguration = FieldConfiguration()
    trashed: bool = False
    trashed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SchemaColumn(BaseModel):
    type: SchemaType
    required: bool = False
    multiple: bool = False
    ref: Optional[str] = None
    default: Any = None
    embedded: Optional[Dict[str, "SchemaColumn"]] = None


class FieldOrder(BaseModel):
    list: List[str] = []
    form: List[str] = []


class TableConfiguration(BaseModel):
    style: TableStyle = TableStyle.LIST
    visibility: TableVisibility = TableVisibility.RESTRICTED
    collaboration: TableCollaboration = TableCollaboration.RESTRICTED
    owner: Optional[str] = None
    administrators: List[str] = []
    field_order: FieldOrder = FieldOrder()


class MethodCode(BaseModel):
    code: Optional[str] = None


class TableMethods(BaseModel):
    on_load: MethodCode = MethodCode()
    before_save: MethodCode = MethodCode()
    after_save: MethodCode = MethodCode()


class Table(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    logo: Optional[str] = None
    fields: List[Field] = []
    type: TableType = TableType.TABLE
    configuration: TableConfiguration = TableConfiguration()
    methods: TableMethods = TableMethods()
    synthesized_schema: Dict[str, SchemaColumn] = {}
    trashed: bool = False
    trashed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def get_field(self, field_id: str) -> Optional[Field]:
        return next((f for f in self.fields if f.id == field_id), None)

    def is_owner(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and self.configuration.owner == user_id

    def is_administrator(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id in self.configuration.administrators


class Permission(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None


class UserGroup(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    permissions: List[Permission] = []


class User(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    status: UserStatus = UserStatus.ACTIVE
    group: Optional[UserGroup] = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


class Principal(BaseModel):
    """Verified identity handed over by the auth layer."""

    sub: str
    role: Optional[str] = None
    email: Optional[str] = None


class Menu(BaseModel):
    id: str
    name: str
    slug: str
    type: MenuItemType
    table: Optional[str] = None
    parent: Optional[str] = None
    url: Optional[str] = None
    html: Optional[str] = None
    trashed: bool = False
    trashed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


CategoryNode.model_rebuild()
SchemaColumn.model_rebuild()
