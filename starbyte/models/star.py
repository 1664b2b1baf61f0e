"""
Star model: a registered Starbyte user and their Stardust balance.
"""
import uuid
from datetime import datetime
from typing import Dict, Any
from ..extensions import db


class Star(db.Model):
    """
    A registered user of the platform.

    `stardust` is the spendable balance. Purchases debit it only through the
    Purchase Authority, which locks the row for the duration of the debit.
    """
    __tablename__ = 'stars'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(255), unique=True)
    star_name = db.Column(db.String(50), unique=True, nullable=False)
    display_name = db.Column(db.String(100))
    avatar = db.Column(db.String(500))
    bio = db.Column(db.Text)

    stardust = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('stardust >= 0', name='stardust_non_negative'),
    )

    def __repr__(self):
        return f'<Star {self.star_name} stardust={self.stardust}>'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'star_name': self.star_name,
            'display_name': self.display_name,
            'avatar': self.avatar,
            'bio': self.bio,
            'stardust': self.stardust,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
