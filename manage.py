import click
from fooddash import create_app, db
from fooddash.config import DevelopmentConfig

app = create_app(DevelopmentConfig)


@app.cli.command('setup-db')
def setup_db():
    """Setup database and create tables"""
    db.create_all()
    click.echo("Database tables created!")


@app.cli.command('create-admin')
@click.option('--identifier', prompt=True)
@click.option('--name', default='Administrator')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
def create_admin(identifier, name, password):
    """Create an admin user, or promote an existing one"""
    from fooddash.models.models import User

    user = User.query.filter_by(identifier=identifier).first()
    if user:
        user.role = 'admin'
        click.echo(f"Promoted {identifier} to admin")
    else:
        user = User(name=name, identifier=identifier, role='admin')
        user.set_password(password)
        db.session.add(user)
        click.echo(f"Created admin {identifier}")
    db.session.commit()


if __name__ == '__main__':
    app.run()
