from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ClaimFreeProductRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    name: Optional[str] = None
    product_slug: str = Field(alias="productSlug", min_length=1)
    product_name: str = Field(alias="productName", min_length=1)


class WaitlistRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = None
