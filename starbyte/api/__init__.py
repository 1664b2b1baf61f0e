"""
API blueprints for Starbyte.
"""
from .rewards import rewards_bp

__all__ = ['rewards_bp']
