from pydantic import BaseModel


class ShippingAddressIn(BaseModel):
    address_id: int
