from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine
from app.models.account import * # Import the Account & access token models
from app.models.submission import * # Import the Submission model
from app.models.evaluation import * # Import the Evaluation model
from app.config.setting import settings


def build_engine(database_url: str = settings.DATABASE_URL, echo: bool = settings.DATABASE_ECHO) -> Engine:
    return create_engine(database_url, echo=echo)


def create_db_and_tables(engine: Engine):
    # create the table if not exists
    SQLModel.metadata.create_all(engine)
    print("Database and tables created successfully.")
