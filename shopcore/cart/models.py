from pydantic import BaseModel, Field


class CartItemInput(BaseModel):
    product_id: int
    quantity: int = 1


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., description="New absolute quantity for the line")
