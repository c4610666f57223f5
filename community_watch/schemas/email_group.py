from pydantic import BaseModel

from community_watch.schemas.base import CamelModel


class EmailGroupResponse(CamelModel):
    id: int
    name: str
    emails: str


class EmailGroupUpdate(BaseModel):
    emails: str
