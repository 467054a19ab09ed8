from sportsmeet.models.users import Role
from sportsmeet.schemas.base import CamelModel


class UserSummary(CamelModel):
    id: int
    name: str


class UserContact(UserSummary):
    email: str


class UserOut(UserContact):
    role: Role
