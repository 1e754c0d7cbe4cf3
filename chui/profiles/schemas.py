from pydantic import BaseModel
from typing import List, Optional


class User(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    auth_user_id: Optional[str] = None
    created_at: int
    updated_at: int


# profiles/upsert
class UpsertUsernameModel(BaseModel):
    username: str


class UpsertUsernameResponseModel(BaseModel):
    user_id: str
    username: str


# profiles
class ProfileItem(BaseModel):
    username: str
    email: Optional[str] = None


class ListProfilesResponseModel(BaseModel):
    profiles: List[ProfileItem]


# profiles/me
class MyProfileResponseModel(BaseModel):
    profile: Optional[User]
