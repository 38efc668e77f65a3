from pydantic import BaseModel

from reportmanager.domain.models import EntityInfo, FieldInfo


class DataSourceResponse(BaseModel):
    handle: str
    name: str
    description: str
    available: bool


class EntityListResponse(BaseModel):
    data_source: str
    entities: list[EntityInfo]


class FieldListResponse(BaseModel):
    entity_id: int
    fields: list[FieldInfo]


class EntityCountResponse(BaseModel):
    entity_id: int
    count: int
