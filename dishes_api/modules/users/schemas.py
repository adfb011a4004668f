from pydantic import BaseModel
from typing import Optional


class ProfileUpdate(BaseModel):
    email: str
    full_name: Optional[str] = None
    profile_tag: Optional[str] = None
    avatar_url: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str


class UserStats(BaseModel):
    recipes_created: int = 0
    likes_given: int = 0
    favorite_recipes: int = 0
    last_login: Optional[str] = None
    email_confirmed: bool = False
