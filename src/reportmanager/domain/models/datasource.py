"""What a data source reports about its entities and fields."""

from pydantic import BaseModel


class EntityInfo(BaseModel):
    """A reportable unit inside a data source (e.g. one form)."""

    id: int
    name: str
    handle: str
    count: int = 0


class FieldInfo(BaseModel):
    handle: str
    label: str
    type: str = "text"
    exportable: bool = True
