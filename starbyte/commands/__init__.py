"""
CLI Commands for Starbyte.

Usage:
    flask rewards list                                # Active marketplace rewards
    flask rewards show <reward_id>                    # Reward detail with stock counters
    flask rewards refund <receipt_id> --reason "..."  # Reverse a purchase
    flask rewards seed-demo                           # Demo data for local development
"""
from .rewards import init_app as init_reward_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_reward_commands(app)
