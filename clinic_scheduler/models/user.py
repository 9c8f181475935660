from sqlmodel import Field, SQLModel

from clinic_scheduler.core.permissions import UserRole


class UserBase(SQLModel):
    email: str = Field(unique=True, index=True)
    name: str
    role: str = Field(default=UserRole.FRONT_DESK.value, index=True)
    is_active: bool = True


class User(UserBase, table=True):
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)


class UserPublic(SQLModel):
    id: int
    email: str
    name: str
    role: str
    is_active: bool
    permissions: list[str]


class ProviderPublic(SQLModel):
    id: int
    name: str
    email: str
