# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/fieldstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: one user per role (password "Password123!") and a
#   demo agent linked to the agent user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username mgr --email mgr@fieldstock.local --password "Password123!" --role sales_manager
# - python -m flask users deactivate mgr
#
# Agents:
# - python -m flask agents list
# - python -m flask agents create --name "Route 7" --username agent7 --target-cents 5000000
#
# Products (catalog mirror):
# - python -m flask products list
# - python -m flask products create --sku WATER-500 --name "Water 500ml" --price-cents 4800
#
# Permissions:
# - python -m flask perms list --role accountant
# - python -m flask perms check mgr APPROVE_LOAD

import click
from flask.cli import with_appcontext

from .errors import DomainError
from .extensions import db
from .models import Agent, User
from .permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    ROLE_ACCOUNTANT,
    ROLE_AGENT,
    ROLE_COMPANY_OWNER,
    ROLE_IT_ADMIN,
    ROLE_SALES_MANAGER,
    VALID_ROLES,
)
from .services import agent_service, catalog_service, permission_service, session_service
from .services.auth_service import create_user


DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = [
    ("admin", ROLE_IT_ADMIN),
    ("manager", ROLE_SALES_MANAGER),
    ("accountant", ROLE_ACCOUNTANT),
    ("owner", ROLE_COMPANY_OWNER),
    ("agent", ROLE_AGENT),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create default users (one per role) and a demo agent.

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing field stock system...")

    for username, role in DEFAULT_USERS:
        user = db.session.query(User).filter_by(username=username).first()
        if user:
            click.echo(f"PASS User exists: {username} ({user.role})")
            continue
        create_user(username, f"{username}@fieldstock.local", DEFAULT_PASSWORD, role)
        click.echo(f"PASS Created user: {username} ({role})")

    agent_user = db.session.query(User).filter_by(username="agent").first()
    if agent_user.agent is None:
        agent = agent_service.create_agent(name="Demo Agent", user_id=agent_user.id)
        db.session.commit()
        click.echo(f"PASS Created agent: {agent.name} (ID: {agent.id})")
    else:
        click.echo(f"PASS Agent exists: {agent_user.agent.name} (ID: {agent_user.agent.id})")

    click.echo(f"DONE Default password for all users: {DEFAULT_PASSWORD}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.role:<15} {status}")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
    """Create a user. Password must meet strength requirements."""
    try:
        user = create_user(username, email, password, role)
        click.echo(f"PASS Created user {user.username} (ID: {user.id}, role: {user.role})")
    except DomainError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")


@users_group.command('deactivate')
@click.argument('username')
@with_appcontext
def deactivate_user_cli(username):
    """Disable a login and revoke its live sessions."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return
    user.is_active = False
    revoked = session_service.revoke_all_user_sessions(user.id)
    click.echo(f"PASS Deactivated {username} ({revoked} session(s) revoked)")


@click.group('agents')
def agents_group():
    """Field agent commands."""


@agents_group.command('list')
@with_appcontext
def list_agents():
    agents = db.session.query(Agent).order_by(Agent.id).all()
    if not agents:
        click.echo("No agents found")
        return
    for agent in agents:
        login = agent.user.username if agent.user else "-"
        click.echo(f"{agent.id:>4}  {agent.name:<25} login={login:<15} target={agent.monthly_target_cents}")


@agents_group.command('create')
@click.option('--name', prompt=True, help='Agent display name')
@click.option('--username', default=None, help='Login (agent role) that acts for this agent')
@click.option('--phone', default=None)
@click.option('--target-cents', type=int, default=0, help='Monthly sales target in cents')
@with_appcontext
def create_agent_cli(name, username, phone, target_cents):
    try:
        user_id = None
        if username:
            user = db.session.query(User).filter_by(username=username).first()
            if not user:
                click.echo(f"FAIL User '{username}' not found")
                return
            user_id = user.id

        agent = agent_service.create_agent(
            name=name,
            user_id=user_id,
            phone=phone,
            monthly_target_cents=target_cents,
        )
        db.session.commit()
        click.echo(f"PASS Created agent {agent.name} (ID: {agent.id})")
    except DomainError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")


@click.group('products')
def products_group():
    """Catalog mirror commands."""


@products_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive products')
@with_appcontext
def list_products(include_inactive):
    for product in catalog_service.list_products(active_only=not include_inactive):
        click.echo(f"{product.id:>4}  {product.sku:<15} {product.name:<30} {product.unit_price_cents}")


@products_group.command('create')
@click.option('--sku', prompt=True)
@click.option('--name', prompt=True)
@click.option('--price-cents', type=int, prompt=True, help='Unit price in cents')
@with_appcontext
def create_product_cli(sku, name, price_cents):
    """Create or update a product by sku."""
    try:
        product = catalog_service.upsert_product(sku=sku, name=name, unit_price_cents=price_cents)
        db.session.commit()
        click.echo(f"PASS Saved product {product.sku} (ID: {product.id}, price: {product.unit_price_cents})")
    except DomainError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), default=None)
@with_appcontext
def list_perms(role):
    codes = set(DEFAULT_ROLE_PERMISSIONS[role]) if role else None
    for code, name, _description, category in PERMISSION_DEFINITIONS:
        if codes is not None and code not in codes:
            continue
        click.echo(f"{category:<12} {code:<28} {name}")


@perms_group.command('check')
@click.argument('username')
@click.argument('permission_code')
@with_appcontext
def check_perm(username, permission_code):
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return
    if permission_service.user_has_permission(user.id, permission_code):
        click.echo(f"YES {username} has {permission_code}")
    else:
        click.echo(f"NO {username} lacks {permission_code}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(agents_group)
    app.cli.add_command(products_group)
    app.cli.add_command(perms_group)
