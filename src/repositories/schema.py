"""
SQLAlchemy Core table definitions.

Table and column names follow the portal's existing Postgres layout. Each
table carries an integer ``seq`` primary key so ordering never depends on
timestamp ties; the public ``id`` stays an opaque string.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

profiles = Table(
    "profiles",
    metadata,
    Column("user_id", String(64), primary_key=True),
    Column("first_name", String(255), nullable=False),
    Column("last_name", String(255), nullable=False),
    Column("role", String(16), nullable=False, default="customer"),
)

predefined_qa = Table(
    "predefined_qa",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(64), unique=True, nullable=False),
    Column("question", Text, nullable=False),
    Column("answer", Text, nullable=False),
    Column("category", String(255), nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_by", String(64), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

chat_conversations = Table(
    "chat_conversations",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(64), unique=True, nullable=False),
    Column("customer_id", String(64), nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

chat_messages = Table(
    "chat_messages",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(64), unique=True, nullable=False),
    Column(
        "conversation_id",
        String(64),
        ForeignKey("chat_conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("sender_type", String(16), nullable=False),
    Column("message_text", Text, nullable=False),
    Column("file_name", String(255), nullable=True),
    Column("file_url", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

customer_queries = Table(
    "customer_queries",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(64), unique=True, nullable=False),
    Column("customer_id", String(64), nullable=False, index=True),
    Column("query_text", Text, nullable=False),
    Column("response_text", Text, nullable=True),
    Column("status", String(16), nullable=False, default="open"),
    Column("file_name", String(255), nullable=True),
    Column("file_url", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)
