# Overview: Flask CLI command groups for bootstrap, master data and maintenance.

# backend/ckms/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: central kitchen store plus admin and central staff users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Master data:
# - python -m flask stores create --code STORE-01 --name "District 1" [--address "..."]
# - python -m flask stores list
# - python -m flask products create --code BREAD --name "Bread" --unit loaf
# - python -m flask products deactivate 3
# - python -m flask products list
#
# Users:
# - python -m flask users create --username s1 --password "Password123!" --role STORE_STAFF --store-id 2
# - python -m flask users list
#
# Permissions:
# - python -m flask perms list [--role CENTRAL_STAFF]
#
# Maintenance:
# - python -m flask inventory refresh-statuses
#   Recompute ACTIVE / NEAR_EXPIRY / EXPIRED for every non-disposed inventory row.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Role, Store, User
from .permissions import role_permissions_by_category
from .services import catalog_service, inventory_service
from .services.auth_service import PasswordValidationError, create_user
from .validation import ConflictError, NotFoundError, ValidationError


ROLE_CHOICES = click.Choice([r.value for r in Role], case_sensitive=False)


# -- SYSTEM --

@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--central-code', default='CK', help='Central kitchen store code')
@click.option('--central-name', default='Central Kitchen', help='Central kitchen store name')
@with_appcontext
def init_system(central_code, central_name):
    """
    Initialize the system: central kitchen store and default users.

    Creates:
    - The central kitchen store (CENTRAL_STORE_ID must point at it)
    - Users: admin (ADMIN), central (CENTRAL_STAFF)
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing central kitchen system...")

    central_id = current_app.config["CENTRAL_STORE_ID"]
    central = db.session.get(Store, central_id)
    if central is None:
        central = catalog_service.create_store(central_code, central_name)
        db.session.commit()
        click.echo(f"PASS Created central kitchen store: {central.name} (ID: {central.id})")
    else:
        click.echo(f"PASS Using existing central kitchen store: {central.name} (ID: {central.id})")

    if central.id != central_id:
        click.echo(f"WARN  Central kitchen has ID {central.id} but CENTRAL_STORE_ID is {central_id}")

    default_password = "Password123!"
    default_users = [
        ("admin", Role.ADMIN, None),
        ("central", Role.CENTRAL_STAFF, central.id),
    ]

    for username, role, store_id in default_users:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            create_user(username=username, password=default_password, role=role, store_id=store_id)
            click.echo(f"PASS Created user: {username} with role '{role.value}'")
        except (ValueError, PasswordValidationError) as e:
            db.session.rollback()
            click.echo(f"FAIL Failed to create user '{username}': {str(e)}")

    click.echo("\n" + "=" * 60)
    click.echo("DONE System Initialized")
    click.echo("=" * 60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin   / Password123!")
    click.echo("   central / Password123!")
    click.echo("\nCreate stores and store staff with 'flask stores create' and 'flask users create'.")


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


# -- STORES --

@click.group('stores')
def stores_group():
    """Store master data."""


@stores_group.command('create')
@click.option('--code', prompt=True, help='Store code (unique)')
@click.option('--name', prompt=True, help='Store name')
@click.option('--address', default=None, help='Street address')
@with_appcontext
def create_store_cli(code, name, address):
    try:
        store = catalog_service.create_store(code, name, address)
        db.session.commit()
        click.echo(f"PASS Created store: {store.code} {store.name} (ID: {store.id})")
    except (ValidationError, ConflictError) as e:
        db.session.rollback()
        click.echo(f"FAIL {str(e)}")


@stores_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive stores')
@with_appcontext
def list_stores_cli(include_inactive):
    central_id = current_app.config["CENTRAL_STORE_ID"]
    for store in catalog_service.list_stores(include_inactive=include_inactive):
        marker = " [central]" if store.id == central_id else ""
        state = "" if store.is_active else " (inactive)"
        click.echo(f"{store.id:>4}  {store.code:<12} {store.name}{marker}{state}")


# -- PRODUCTS --

@click.group('products')
def products_group():
    """Product master data."""


@products_group.command('create')
@click.option('--code', prompt=True, help='Product code (unique)')
@click.option('--name', prompt=True, help='Product name')
@click.option('--unit', prompt=True, help='Unit label, e.g. kg, box, portion')
@with_appcontext
def create_product_cli(code, name, unit):
    try:
        product = catalog_service.create_product(code, name, unit)
        db.session.commit()
        click.echo(f"PASS Created product: {product.code} {product.name} ({product.unit}) (ID: {product.id})")
    except (ValidationError, ConflictError) as e:
        db.session.rollback()
        click.echo(f"FAIL {str(e)}")


@products_group.command('deactivate')
@click.argument('product_id', type=int)
@with_appcontext
def deactivate_product_cli(product_id):
    """Deactivate a product so it can no longer be ordered."""
    try:
        product = catalog_service.set_product_active(product_id, False)
        db.session.commit()
        click.echo(f"PASS Deactivated product: {product.code}")
    except NotFoundError as e:
        click.echo(f"FAIL {str(e)}")


@products_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive products')
@with_appcontext
def list_products_cli(include_inactive):
    for product in catalog_service.list_products(include_inactive=include_inactive):
        state = "" if product.is_active else " (inactive)"
        click.echo(f"{product.id:>4}  {product.code:<16} {product.name} [{product.unit}]{state}")


# -- USERS --

@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=ROLE_CHOICES, prompt=True, help='Role')
@click.option('--store-id', type=int, default=None, help='Store ID (required for STORE_STAFF)')
@with_appcontext
def create_user_cli(username, password, role, store_id):
    """
    Create a new user.

    Password must meet strength requirements: 8+ chars, uppercase,
    lowercase, digit and special character.
    """
    try:
        user = create_user(username=username, password=password, role=Role(role.upper()), store_id=store_id)
        click.echo(f"PASS Created user: {user.username} with role '{user.role.value}'")
        click.echo("SECURITY Password securely hashed with bcrypt")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except ValueError as e:
        db.session.rollback()
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found. Run 'python -m flask system init' first.")
        return
    for user in users:
        state = "active" if user.is_active else "inactive"
        store = f"store {user.store_id}" if user.store_id else "no store"
        click.echo(f"{user.id:>4}  {user.username:<16} {user.role.value:<14} {store:<10} {state}")


# -- PERMISSIONS --

@click.group('perms')
def perms_group():
    """Permission inspection."""


@perms_group.command('list')
@click.option('--role', type=ROLE_CHOICES, default=None, help='Only this role')
@with_appcontext
def list_perms_cli(role):
    roles = [Role(role.upper())] if role else list(Role)
    for r in roles:
        click.echo(f"\n{r.value}")
        for category, definitions in role_permissions_by_category(r).items():
            click.echo(f"  [{category}]")
            for definition in definitions:
                click.echo(f"    {definition['code']:<26} {definition['description']}")


# -- INVENTORY --

@click.group('inventory')
def inventory_group():
    """Inventory maintenance."""


@inventory_group.command('refresh-statuses')
@with_appcontext
def refresh_statuses_cli():
    """Recompute expiry statuses of all non-disposed inventory rows."""
    changed = inventory_service.refresh_expiry_statuses()
    db.session.commit()
    click.echo(f"PASS Updated {changed} inventory rows")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(products_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(inventory_group)
