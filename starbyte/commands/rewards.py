"""
CLI Commands for marketplace rewards.

Usage:
    flask rewards list                          # Active rewards with stock counters
    flask rewards list --all                    # Include inactive rewards
    flask rewards show <reward_id>              # One reward as JSON
    flask rewards refund <receipt_id> --reason "Fulfillment endpoint down"
    flask rewards seed-demo                     # Demo stars and rewards for local dev
"""
import json

import click
from flask import current_app
from flask.cli import with_appcontext

from ..extensions import db
from ..models import Star, Reward, DeliveryType, UsageType
from ..services.purchase_authority import authority_from_config


@click.group('rewards')
def rewards_cli():
    """Marketplace reward commands."""
    pass


@rewards_cli.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive rewards')
@with_appcontext
def list_rewards(include_inactive):
    """List marketplace rewards."""
    query = Reward.query
    if not include_inactive:
        query = query.filter(Reward.is_active.is_(True))
    rewards = query.order_by(Reward.created_at.desc()).all()

    if not rewards:
        click.echo("No rewards found")
        return

    for reward in rewards:
        status = 'active' if reward.is_active else 'inactive'
        stock = 'SOLD OUT' if reward.out_of_stock else f'{reward.used_total}/{reward.stock_total}'
        click.echo(
            f"{reward.id}  {reward.title}  {reward.price} Stardust  "
            f"[{reward.delivery_type}, {status}, {stock}]"
        )

    click.echo(f"\nTOTAL: {len(rewards)} rewards")


@rewards_cli.command('show')
@click.argument('reward_id')
@with_appcontext
def show_reward(reward_id):
    """Show one reward as the Purchase Authority reports it."""
    reward = authority_from_config(current_app.config).get_reward(reward_id)
    if not reward:
        click.echo(f"Reward {reward_id} not found")
        raise SystemExit(1)
    click.echo(json.dumps(reward, indent=2, default=str))


@rewards_cli.command('refund')
@click.argument('receipt_id')
@click.option('--reason', required=True, help='Reason recorded on the ledger')
@with_appcontext
def refund_purchase(receipt_id, reason):
    """
    Reverse a purchase: credit the buyer and release the stock unit.

    Use when a delivery could not be honored after the debit.
    """
    result = authority_from_config(current_app.config).refund(receipt_id, reason)

    if not result.get('success'):
        click.echo(f"Refund failed: {result.get('error')}")
        raise SystemExit(1)

    click.echo(f"Refunded receipt {receipt_id}")
    if 'amount' in result:
        click.echo(f"  Amount: {result['amount']} Stardust")
    if 'new_balance' in result:
        click.echo(f"  New balance: {result['new_balance']} Stardust")


DEMO_STARS = [
    {
        'star_name': 'nova',
        'display_name': 'Nova',
        'email': 'nova@example.com',
        'bio': 'Collects every badge.',
        'stardust': 50,
    },
    {
        'star_name': 'orbit',
        'display_name': 'Orbit Studio',
        'email': 'orbit@example.com',
        'bio': 'Lists rewards for top challengers.',
        'stardust': 0,
    },
]

DEMO_REWARDS = [
    {
        'title': 'Welcome pack',
        'description': 'A discount code for your first order.',
        'price': 20,
        'delivery_type': DeliveryType.CODE.value,
        'usage_type': UsageType.SINGLE_USE.value,
        'delivery_data': {'code': 'WELCOME20'},
        'delivery_instructions': 'Enter the code at checkout.',
        'stock_total': 100,
    },
    {
        'title': 'Wallpaper bundle',
        'description': 'Exclusive wallpapers for challengers.',
        'price': 10,
        'delivery_type': DeliveryType.LINK.value,
        'usage_type': UsageType.MULTI_USE.value,
        'delivery_data': {'link': 'https://example.com/wallpapers'},
        'stock_total': 500,
    },
    {
        'title': 'Studio membership',
        'description': 'One month of studio access, issued by the lister.',
        'price': 40,
        'delivery_type': DeliveryType.FETCH.value,
        'usage_type': UsageType.SINGLE_USE.value,
        'delivery_data': {'fetch': {'url': 'https://example.com/api/fulfill', 'method': 'POST'}},
        'delivery_instructions': 'Your membership code arrives from Orbit Studio.',
        'stock_total': 10,
    },
]


@rewards_cli.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create demo stars and rewards (skips anything already present)."""
    stars = {}
    for data in DEMO_STARS:
        star = Star.query.filter_by(star_name=data['star_name']).first()
        if not star:
            star = Star(**data)
            db.session.add(star)
            click.echo(f"Created star {data['star_name']} ({data['stardust']} Stardust)")
        stars[data['star_name']] = star
    db.session.flush()

    lister = stars['orbit']
    for data in DEMO_REWARDS:
        if Reward.query.filter_by(title=data['title'], lister_id=lister.id).first():
            continue
        db.session.add(Reward(lister_id=lister.id, **data))
        click.echo(f"Created reward {data['title']} ({data['delivery_type']}, {data['price']} Stardust)")

    db.session.commit()
    click.echo("Demo data ready")


def init_app(app):
    """Register reward commands with the Flask app."""
    app.cli.add_command(rewards_cli)
