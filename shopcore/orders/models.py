from pydantic import BaseModel, Field


class OrderStatusUpdateIn(BaseModel):
    status: str = Field(..., min_length=1, max_length=32)
