# app/models/schema_migration.py
from sqlalchemy import Column, Integer, String, DateTime
from app.database import Base


class SchemaMigration(Base):
    __tablename__ = "schema_migrations"

    version = Column(Integer, primary_key=True, autoincrement=False)
    description = Column(String(200), nullable=False)
    applied_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<SchemaMigration v{self.version} {self.description}>"
