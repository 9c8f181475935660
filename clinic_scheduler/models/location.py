from sqlmodel import Field, SQLModel


class Location(SQLModel, table=True):
    __tablename__ = "locations"
    id: int | None = Field(default=None, primary_key=True)
    name: str
    is_active: bool = True


class LocationPublic(SQLModel):
    id: int
    name: str
    is_active: bool
