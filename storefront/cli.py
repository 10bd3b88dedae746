# storefront/cli.py
import click
from flask.cli import with_appcontext
from werkzeug.security import generate_password_hash

from .extensions import db
from .model import User
from .services.catalog import read_products_xlsx, seed_sample_products, write_products_xlsx
from .utils.errors import StorefrontError


@click.command("create-admin")
@with_appcontext
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
def create_admin(email, password, name):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(email=email, name=name, password_hash=generate_password_hash(password), role="admin")
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")


@click.command("seed-products")
@with_appcontext
def seed_products():
    """Insert the sample catalogue (skips SKUs that already exist)."""
    added = seed_sample_products()
    click.echo(f"{added} sample products added")


@click.command("export-products")
@with_appcontext
@click.argument("path", type=click.Path(dir_okay=False, writable=True))
def export_products(path):
    write_products_xlsx(path)
    click.echo(f"Products exported to {path}")


@click.command("import-products")
@with_appcontext
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_products(path):
    try:
        result = read_products_xlsx(path)
    except StorefrontError as e:
        raise click.ClickException(e.message)
    click.echo(f"{result['created']} created, {result['updated']} updated from {path}")


def register_cli(app):
    for command in (create_admin, seed_products, export_products, import_products):
        app.cli.add_command(command)
