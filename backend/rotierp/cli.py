# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to rotierp (PowerShell: $env:FLASK_APP="rotierp").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the permission catalog, a super admin and sample roti products.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role ADMIN]
#   List users with role and status.
# - python -m flask users create --email admin@rotifactory.com --password "Password123!" --role ADMIN
#   Create a user (prompts if options are omitted).
#
# Order maintenance:
# - python -m flask orders purge --yes
#   Delete every order and its items in one transaction.
# - python -m flask orders delete ORD-000042
#   Delete one order and its items.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import InventoryItem, Order, OrderItem, Product, User
from .roles import ROLE_NAMES
from .services.auth_service import create_user, PasswordValidationError
from .services.permission_service import assign_default_role_permissions, initialize_permissions
from .errors import ApiError

DEFAULT_ADMIN_EMAIL = "superadmin@rotifactory.com"
DEFAULT_PASSWORD = "Password123!"

SAMPLE_PRODUCTS = [
    # (name, sku, unit price in cents, cost price in cents)
    ("Plain Roti", "ROTI-PLAIN", 500, 300),
    ("Butter Roti", "ROTI-BUTTER", 800, 450),
    ("Tandoori Roti", "ROTI-TANDOORI", 1000, 600),
    ("Missi Roti", "ROTI-MISSI", 1200, 700),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--email', default=DEFAULT_ADMIN_EMAIL, help='Super admin email')
@click.option('--password', default=DEFAULT_PASSWORD, help='Super admin password')
@with_appcontext
def init_system(email, password):
    """
    Initialize the factory database.

    Creates:
    - All tables (no-op for tables that already exist)
    - The permission catalog and default role grants (roles that already
      have grants keep them)
    - A SUPER_ADMIN user (skipped if the email exists)
    - Sample roti products (skipped per SKU if present)

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing Roti Factory ERP...")

    db.create_all()
    click.echo("PASS Tables created")

    click.echo(f"PASS Permissions created: {initialize_permissions()}")
    click.echo(f"PASS Role grants created: {assign_default_role_permissions()}")

    existing = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if existing:
        click.echo(f"WARN  User '{email}' already exists, skipping...")
    else:
        try:
            create_user(
                email=email,
                password=password,
                first_name="Super",
                last_name="Admin",
                role="SUPER_ADMIN",
            )
            click.echo(f"PASS Created super admin: {email}")
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed for '{email}': {e.message}")
            return

    created = 0
    for name, sku, price, cost in SAMPLE_PRODUCTS:
        if db.session.query(Product.id).filter_by(sku=sku).first():
            continue
        product = Product(
            name=name,
            sku=sku,
            category="ROTI",
            unit="PIECE",
            unit_price_cents=price,
            cost_price_cents=cost,
        )
        db.session.add(product)
        db.session.add(InventoryItem(product=product))
        created += 1
    db.session.commit()
    click.echo(f"PASS Sample products created: {created}")

    click.echo("\n" + "=" * 60)
    click.echo("DONE Roti Factory ERP Initialized Successfully!")
    click.echo("=" * 60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   {email} / <password from --password, default {DEFAULT_PASSWORD}>")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--first-name', default='Factory', help='First name')
@click.option('--last-name', default='User', help='Last name')
@click.option('--role', type=click.Choice(ROLE_NAMES, case_sensitive=False), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, password, first_name, last_name, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e.message}")
        return
    except ApiError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        return

    click.echo(f"PASS Created user: {user.email} with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@click.option('--role', type=click.Choice(ROLE_NAMES, case_sensitive=False), help='Filter by role')
@with_appcontext
def list_users(role):
    """List users with role and status."""
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role.upper())
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Email':<35} {'Name':<22} {'Role':<18} {'Status'}")
    click.echo("=" * 80)
    for user in users:
        click.echo(f"{user.id:<5} {user.email:<35} {user.full_name:<22} {user.role:<18} {user.status}")
    click.echo("=" * 80 + "\n")


# =============================================================================
# ORDER MAINTENANCE COMMANDS
# =============================================================================

@click.group('orders')
def orders_group():
    """Order maintenance commands."""


@orders_group.command('purge')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def purge_orders(yes):
    """
    DANGER: Delete every order and order item.

    Items are deleted before their orders; both deletes commit together or
    not at all.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL ORDERS. Are you sure?", abort=True)

    try:
        items_deleted = db.session.query(OrderItem).delete(synchronize_session=False)
        orders_deleted = db.session.query(Order).delete(synchronize_session=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    click.echo(f"PASS Deleted {orders_deleted} orders and {items_deleted} order items")


@orders_group.command('delete')
@click.argument('order_number')
@with_appcontext
def delete_order(order_number):
    """Delete one order (by number, e.g. ORD-000042) and its items."""
    order = db.session.query(Order).filter_by(order_number=order_number.strip().upper()).first()
    if not order:
        click.echo(f"FAIL Order '{order_number}' not found")
        return

    item_count = len(order.items)
    db.session.delete(order)
    db.session.commit()
    click.echo(f"PASS Deleted order {order.order_number} ({item_count} items)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(orders_group)
