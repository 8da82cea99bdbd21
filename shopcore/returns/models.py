from pydantic import BaseModel, Field
from shopcore.returns.constants import MAX_RETURN_REASON_LENGTH


class ReturnRequestIn(BaseModel):
    reason: str = Field(..., max_length=MAX_RETURN_REASON_LENGTH)


class ReturnDecisionIn(BaseModel):
    approve: bool
