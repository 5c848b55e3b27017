from sqlalchemy.engine import Engine
from sqlmodel import Session, select
from app.models.account import Account, Role
from passlib.hash import bcrypt

def get_account_by_email(engine: Engine, email: str) -> Account | None:
    with Session(engine) as db:
        return db.exec(select(Account).where(Account.email == email)).first()

def create_account(engine: Engine, email: str, password: str, role: Role) -> Account:
    """Provision an account in the database. Signup happens outside the portal."""
    with Session(engine) as db:
        account = Account(email=email, password=bcrypt.hash(password), role=role)
        db.add(account)
        db.commit()
        db.refresh(account)
        return account

def delete_account(engine: Engine, email: str):
    """Delete an account by email from the database."""
    with Session(engine) as db:
        account = db.exec(select(Account).where(Account.email == email)).first()
        if account:
            db.delete(account)
            db.commit()

def seed_account(engine: Engine, email: str, password: str, role: Role, replace: bool = False) -> Account:
    """Create the account unless it exists; with ``replace`` an existing one is recreated."""
    existing = get_account_by_email(engine, email)
    if existing and not replace:
        print(f"Account {email} already exists, skipping creation")
        return existing
    if existing:
        delete_account(engine, email)
    account = create_account(engine, email, password, role)
    print(f"Account {email} created with role {role.value}")
    return account
