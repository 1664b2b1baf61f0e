"""
Database models for Starbyte.
Stars, marketplace rewards and the stardust ledger.
"""
from .star import Star
from .reward import Reward, DeliveryType, UsageType
from .stardust import StardustTransaction, StardustTransactionType
