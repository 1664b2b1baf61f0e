"""
Receipt email schemas.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RewardDetail(BaseModel):
    code: Optional[str] = None
    link: Optional[str] = None


class ReceiptLineItem(BaseModel):
    """One purchased reward as shown in the receipt email."""

    model_config = ConfigDict(extra='ignore')

    title: str
    description: Optional[str] = None
    price: int = 0
    image_url: Optional[str] = None
    delivery_instructions: Optional[str] = None
    reward_detail: Optional[RewardDetail] = None
