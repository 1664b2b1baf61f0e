"""
Marketplace reward models.

A reward is listed by a Star, priced in Stardust, and fulfilled through one
of three delivery mechanisms:
- code:  an instant redemption code
- link:  an instant URL
- fetch: a call to a lister-supplied fulfillment endpoint

The delivery payload is stored keyed by the delivery type, e.g.
{"code": "WELCOME20"}, {"link": "https://..."} or
{"fetch": {"url": "https://...", "method": "POST", "headers": {...}}}.
It is never included in public serializations.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, Any
from ..extensions import db


class DeliveryType(str, Enum):
    """How a purchased reward is delivered."""
    CODE = 'code'
    LINK = 'link'
    FETCH = 'fetch'


class UsageType(str, Enum):
    """How often a star may redeem the same reward."""
    SINGLE_USE = 'single_use'   # Once per star
    MULTI_USE = 'multi_use'     # Repeatable while stock lasts


class Reward(db.Model):
    """A marketplace listing redeemable for Stardust."""
    __tablename__ = 'rewards'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lister_id = db.Column(db.String(36), db.ForeignKey('stars.id'), nullable=False)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.JSON)  # List of image URLs
    price = db.Column(db.Integer, nullable=False)

    delivery_type = db.Column(db.String(10), nullable=False, default=DeliveryType.CODE.value)
    usage_type = db.Column(db.String(20), nullable=False, default=UsageType.MULTI_USE.value)
    delivery_data = db.Column(db.JSON)
    delivery_instructions = db.Column(db.Text)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    stock_total = db.Column(db.Integer, default=0, nullable=False)
    used_total = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lister = db.relationship('Star', backref='rewards')

    __table_args__ = (
        db.CheckConstraint('price > 0', name='price_positive'),
        db.Index('ix_rewards_active_price', 'is_active', 'price'),
    )

    def __repr__(self):
        return f'<Reward {self.title!r} {self.delivery_type} {self.used_total}/{self.stock_total}>'

    @property
    def out_of_stock(self) -> bool:
        return (self.used_total or 0) >= (self.stock_total or 0)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for API responses."""
        return {
            'id': self.id,
            'lister_id': self.lister_id,
            'title': self.title,
            'description': self.description,
            'image_url': self.image_url or [],
            'price': self.price,
            'delivery_type': self.delivery_type,
            'usage_type': self.usage_type,
            'delivery_instructions': self.delivery_instructions,
            'is_active': self.is_active,
            'stock_total': self.stock_total,
            'used_total': self.used_total,
            'out_of_stock': self.out_of_stock,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
