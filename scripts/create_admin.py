# scripts/create_admin.py

"""
Creates the first administrator account, or grants ROLE_ADMIN to an
existing account with the same e-mail.

    python -m scripts.create_admin --email admin@example.com
"""

import asyncio

import typer
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.database import AsyncSessionLocal
from gmao.core.roles import UserRole
from gmao.domains.usr import crud as usr_crud
from gmao.domains.usr import schemas as usr_schemas

cli = typer.Typer()


async def create_admin_user(db: AsyncSession, user_in: usr_schemas.UserCreate) -> str:
    db_user = await usr_crud.user.get_by_email(db, email=user_in.email)
    if db_user:
        if UserRole.ADMIN.value in db_user.roles:
            return f"{db_user.email} is already an administrator."
        roles = [UserRole(role) for role in db_user.roles] + [UserRole.ADMIN]
        await usr_crud.user.update(db, db_obj=db_user, obj_in=usr_schemas.UserUpdate(roles=roles))
        return f"{db_user.email} promoted to administrator."

    db_user = await usr_crud.user.create(db, obj_in=user_in)
    return f"Administrator account created: {db_user.email} (id={db_user.id})"


@cli.command()
def main(
    email: str = typer.Option(
        ..., "--email", "-e",
        prompt="Administrator e-mail",
        help="E-mail address used to log in.",
    ),
    password: str = typer.Option(
        ..., "--password", "-p",
        prompt="Administrator password",
        hide_input=True,
        confirmation_prompt=True,
        help="Password (at least 8 characters).",
    ),
    nom: str = typer.Option("Admin", "--nom", help="Last name."),
    prenom: str = typer.Option("GMAO", "--prenom", help="First name."),
):
    """
    Creates a new administrator for the GMAO application.
    """
    if len(password) < 8:
        typer.echo("Error: the password must be at least 8 characters long.", err=True)
        raise typer.Abort()

    user_in = usr_schemas.UserCreate(
        email=email,
        password=password,
        nom=nom,
        prenom=prenom,
        roles=[UserRole.ADMIN],
    )

    async def run_creation() -> str:
        async with AsyncSessionLocal() as db:
            return await create_admin_user(db, user_in)

    typer.echo(asyncio.run(run_creation()))


if __name__ == "__main__":
    cli()
