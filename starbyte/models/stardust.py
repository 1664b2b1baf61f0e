"""
Stardust ledger.

Every purchase debit and refund credit is recorded here. A purchase row's id
is the receipt id shown to the buyer and used as the receipt email's order id.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, Any
from ..extensions import db


class StardustTransactionType(str, Enum):
    """Types of stardust transactions."""
    PURCHASE = 'purchase'   # Reward purchase (negative)
    REFUND = 'refund'       # Reversal of a purchase (positive)


class StardustTransaction(db.Model):
    """
    Stardust transaction ledger.

    Design notes:
    - Immutable once created (refunds create new entries)
    - A purchase can be reversed at most once (reversed_at set)
    """
    __tablename__ = 'stardust_transactions'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    star_id = db.Column(db.String(36), db.ForeignKey('stars.id'), nullable=False)
    reward_id = db.Column(db.String(36), db.ForeignKey('rewards.id'))

    amount = db.Column(db.Integer, nullable=False)
    transaction_type = db.Column(db.String(20), nullable=False)
    description = db.Column(db.String(500))

    related_transaction_id = db.Column(db.String(36), db.ForeignKey('stardust_transactions.id'))
    reversed_at = db.Column(db.DateTime)
    reversed_reason = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    star = db.relationship('Star', backref='stardust_transactions')
    reward = db.relationship('Reward', backref='transactions')

    __table_args__ = (
        db.Index('ix_stardust_transactions_star_reward', 'star_id', 'reward_id'),
    )

    def __repr__(self):
        return f'<StardustTransaction {self.transaction_type} {self.amount} star={self.star_id}>'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'star_id': self.star_id,
            'reward_id': self.reward_id,
            'amount': self.amount,
            'transaction_type': self.transaction_type,
            'description': self.description,
            'related_transaction_id': self.related_transaction_id,
            'reversed_at': self.reversed_at.isoformat() if self.reversed_at else None,
            'reversed_reason': self.reversed_reason,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
