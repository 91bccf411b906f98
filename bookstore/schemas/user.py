from pydantic import BaseModel
from typing import List, Optional

from bookstore.models.user import Role
from bookstore.schemas.base import BaseResponse, TimestampedSchema


class UserProfile(TimestampedSchema):
    id: str
    email: str
    full_name: str
    role: Role


class MeData(BaseModel):
    profile: UserProfile
    home_path: str


class MeResponse(BaseResponse):
    data: Optional[MeData] = None


class UserListResponse(BaseResponse):
    data: List[UserProfile] = []
