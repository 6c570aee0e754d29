# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/pharmapos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@pharmapos.local]
#   Idempotent bootstrap: creates tables and a default admin account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --email a@b.c --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
#
# Stock inspection:
# - python -m flask products low-stock [--threshold 5]
#   List products at or below the threshold, lowest first.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import ROLE_ADMIN, ROLES
from .services.auth_service import create_user, PasswordValidationError
from .services.dashboard_service import compute_dashboard
from .services.stock_ledger import get_stock_ledger
from .validation import ConflictError, ValidationError

DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default='admin@pharmapos.local', show_default=True, help='Email of the default admin')
@click.option('--admin-password', default=DEFAULT_ADMIN_PASSWORD, help='Password of the default admin')
@with_appcontext
def init_system(admin_email, admin_password):
    """
    Initialize PharmaPOS: create missing tables and a default admin account.

    Safe to run repeatedly; an existing admin email is left untouched.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing PharmaPOS...")

    db.create_all()
    click.echo("PASS Schema present")

    existing = db.session.query(User).filter_by(email=admin_email.strip().lower()).first()
    if existing:
        click.echo(f"PASS Using existing admin: {existing.email} (role: {existing.role})")
        return

    try:
        user = create_user(admin_email, admin_password, role=ROLE_ADMIN, name="Admin")
    except (ValidationError, PasswordValidationError) as e:
        click.echo(f"FAIL Could not create admin: {e}")
        return

    click.echo(f"PASS Created admin: {user.email}")
    if admin_password == DEFAULT_ADMIN_PASSWORD:
        click.echo(f"SECURITY Default password is '{DEFAULT_ADMIN_PASSWORD}'. Change it now.")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), default='user', show_default=True, help='Role')
@click.option('--name', default='', help='First name')
@click.option('--surname', default='', help='Last name')
@with_appcontext
def create_user_cli(email, password, role, name, surname):
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
        user = create_user(email, password, role=role, name=name, surname=surname)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.email} with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = db.session.query(User).order_by(User.email.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<38} {'Email':<34} {'Role':<8} {'Active'}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<38} {user.email:<34} {user.role:<8} {active_str}")

    click.echo("="*100 + "\n")


@click.group('products')
def products_group():
    """Catalog and stock inspection commands."""


@products_group.command('low-stock')
@click.option('--threshold', type=int, default=None, help='Defaults to LOW_STOCK_THRESHOLD')
@with_appcontext
def low_stock_cli(threshold):
    """List products at or below the low-stock threshold."""
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)

    products = get_stock_ledger().list_products()
    low_stock = compute_dashboard([], products, low_stock_threshold=threshold).low_stock

    if not low_stock:
        click.echo(f"No products at or below {threshold}.")
        return

    click.echo(f"{'ID':<6} {'Code':<10} {'Qty':>6}  Name")
    for product in low_stock:
        click.echo(f"{product.id:<6} {product.product_code:<10} {product.quantity:>6}  {product.name}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
