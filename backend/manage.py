import click
from absensi import create_app
from absensi.extensions import db
from absensi.models import User, Role
from absensi.seed import seed_data
from flask.cli import with_appcontext
from flask_migrate import upgrade, migrate, init

app = create_app()


@app.cli.command("db-init")
@with_appcontext
def db_init():
    """Creates the migrations directory"""
    init()


@app.cli.command("db-migrate")
@click.option("-m", "--message", default=None, help="Revision message")
@with_appcontext
def db_migrate(message):
    """Autogenerates a migration from the current models"""
    migrate(message=message)


@app.cli.command("db-upgrade")
@with_appcontext
def db_upgrade():
    """Applies pending migrations"""
    upgrade()


@app.cli.command("seed")
@with_appcontext
def seed():
    """Creates the admin account, divisions, session types and a first batch"""
    seed_data()


@app.cli.command("create-admin")
@click.argument("email")
@click.option("--name", default="Administrator")
@click.password_option()
@with_appcontext
def create_admin(email, name, password):
    """Creates an admin account or promotes an existing one"""
    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if user:
        user.role = Role.admin
        click.echo(f"Promoted {email} to admin")
    else:
        user = User(name=name, email=email, role=Role.admin)
        db.session.add(user)
        click.echo(f"Created admin {email}")
    user.set_password(password)
    db.session.commit()
