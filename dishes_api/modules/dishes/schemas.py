from enum import Enum
from pydantic import BaseModel


class DishStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ModerationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class StatusChange(BaseModel):
    action: str  # only "submit_for_review" is accepted from owners
