"""SQLAlchemy Core table definitions for members."""

from sqlalchemy import Column, Float, MetaData, Table, Text

metadata = MetaData()

members_table = Table(
    "member",
    metadata,
    Column("uid", Text, primary_key=True),
    Column("created_at", Float, nullable=False),
    Column("updated_at", Float, nullable=True),
)
