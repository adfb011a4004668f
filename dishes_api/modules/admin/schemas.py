from pydantic import BaseModel
from typing import Optional

from dishes_api.modules.dishes.schemas import ModerationAction


class RoleUpdate(BaseModel):
    role: str


class DishModeration(BaseModel):
    action: ModerationAction
    reason: Optional[str] = None
