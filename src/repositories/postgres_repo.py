"""
PostgreSQL repositories using SQLAlchemy Core.

The same statements run on SQLite, which the unit tests use. Single-aggregate
mutations lock the row (``SELECT ... FOR UPDATE``) inside one transaction so
concurrent transitions on a ticket are serialized by the database.
"""

from __future__ import annotations

import json
import os
from typing import Any, Callable, Dict, Iterable, List, Optional

import boto3
from sqlalchemy import create_engine, delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import QueuePool

from models.conversation import Conversation, Message, SenderType
from models.identity import Profile, Role
from models.knowledge import KnowledgeEntry
from models.ticket import Ticket, TicketStatus
from repositories import schema
from repositories.base import (
    ConversationRepository,
    KnowledgeRepository,
    ProfileRepository,
    TicketRepository,
)
from utils.clock import as_utc, utcnow
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Connection pooling for Lambda reuse.
_engine: Optional[Engine] = None


def get_db_engine(database_url: Optional[str] = None) -> Optional[Engine]:
    """Get or create the SQLAlchemy engine with connection pooling."""
    global _engine
    if _engine is None:
        db_url = database_url or os.environ.get("DATABASE_URL")
        if not db_url:
            secret_arn = os.environ.get("DB_SECRET_ARN")
            if secret_arn:
                db_url = _secret_to_db_url(secret_arn)
        if not db_url:
            logger.warning("DATABASE_URL not set; SQL repositories unavailable")
            return None
        _engine = create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=1,
            max_overflow=2,
            pool_pre_ping=True,
            pool_recycle=300,
        )
    return _engine


def _secret_to_db_url(secret_arn: str) -> Optional[str]:
    """Build a SQLAlchemy URL from an RDS secret."""
    try:
        sm = boto3.client("secretsmanager")
        secret = json.loads(sm.get_secret_value(SecretId=secret_arn)["SecretString"])
    except Exception as exc:
        logger.warning("Failed to load DB secret", extra={"error": str(exc)})
        return None

    host = secret.get("host")
    port = secret.get("port", 5432)
    username = secret.get("username")
    password = secret.get("password")
    dbname = secret.get("dbname", "postgres")
    if not (host and username and password):
        return None
    return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{dbname}"


def create_schema(engine: Engine) -> None:
    """Create missing tables (idempotent)."""
    schema.metadata.create_all(engine)


class PostgresRepository:
    """Thin wrapper to keep statements organized and parameterized."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def fetch_one(self, stmt) -> Optional[Dict[str, Any]]:
        """Execute a SELECT and return one row as dict."""
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
            return dict(row._mapping) if row else None

    def fetch_all(self, stmt) -> List[Dict[str, Any]]:
        """Execute a SELECT and return every row as dict."""
        with self.engine.connect() as conn:
            return [dict(row._mapping) for row in conn.execute(stmt)]

    def execute(self, stmt) -> Any:
        """Execute a statement in its own transaction."""
        with self.engine.begin() as conn:
            return conn.execute(stmt)

    @staticmethod
    def _locked_row(conn: Connection, table, key_column, key: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            select(table).where(key_column == key).with_for_update()
        ).fetchone()
        return dict(row._mapping) if row else None


def _entry_from_row(row: Dict[str, Any]) -> KnowledgeEntry:
    return KnowledgeEntry(
        id=row["id"],
        question=row["question"],
        answer=row["answer"],
        category=row["category"],
        active=bool(row["is_active"]),
        created_by=row["created_by"],
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
        sequence=row["seq"],
    )


def _conversation_from_row(row: Dict[str, Any]) -> Conversation:
    return Conversation(
        id=row["id"],
        customer_id=row["customer_id"],
        title=row["title"],
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
    )


def _message_from_row(row: Dict[str, Any]) -> Message:
    return Message(
        id=row["id"],
        conversation_id=row["conversation_id"],
        sender_type=SenderType(row["sender_type"]),
        text=row["message_text"],
        attachment_name=row["file_name"],
        attachment_ref=row["file_url"],
        created_at=as_utc(row["created_at"]),
        sequence=row["seq"],
    )


def _ticket_from_row(row: Dict[str, Any]) -> Ticket:
    return Ticket(
        id=row["id"],
        customer_id=row["customer_id"],
        query_text=row["query_text"],
        response_text=row["response_text"],
        status=TicketStatus(row["status"]),
        attachment_name=row["file_name"],
        attachment_ref=row["file_url"],
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
        sequence=row["seq"],
    )


class SqlKnowledgeRepository(PostgresRepository, KnowledgeRepository):
    table = schema.predefined_qa

    def _values(self, entry: KnowledgeEntry) -> Dict[str, Any]:
        return {
            "question": entry.question,
            "answer": entry.answer,
            "category": entry.category,
            "is_active": entry.active,
            "updated_at": entry.updated_at,
        }

    def add(self, entry: KnowledgeEntry) -> KnowledgeEntry:
        values = self._values(entry)
        values.update(id=entry.id, created_by=entry.created_by, created_at=entry.created_at)
        result = self.execute(insert(self.table).values(**values))
        return entry.model_copy(update={"sequence": result.inserted_primary_key[0]})

    def get(self, entry_id: str) -> Optional[KnowledgeEntry]:
        row = self.fetch_one(select(self.table).where(self.table.c.id == entry_id))
        return _entry_from_row(row) if row else None

    def list(self, active_only: bool = False) -> List[KnowledgeEntry]:
        stmt = select(self.table).order_by(self.table.c.seq)
        if active_only:
            stmt = stmt.where(self.table.c.is_active.is_(True))
        return [_entry_from_row(row) for row in self.fetch_all(stmt)]

    def update(
        self,
        entry_id: str,
        mutator: Callable[[KnowledgeEntry], Optional[KnowledgeEntry]],
    ) -> Optional[KnowledgeEntry]:
        with self.engine.begin() as conn:
            row = self._locked_row(conn, self.table, self.table.c.id, entry_id)
            if row is None:
                return None
            current = _entry_from_row(row)
            changed = mutator(current)
            if changed is None:
                return current
            conn.execute(
                update(self.table)
                .where(self.table.c.id == entry_id)
                .values(**self._values(changed))
            )
            return changed

    def delete(self, entry_id: str) -> bool:
        result = self.execute(delete(self.table).where(self.table.c.id == entry_id))
        return result.rowcount > 0

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(self.table)).scalar() or 0


class SqlConversationRepository(PostgresRepository, ConversationRepository):
    conversations = schema.chat_conversations
    messages = schema.chat_messages

    def create(self, conversation: Conversation) -> Conversation:
        self.execute(insert(self.conversations).values(**conversation.model_dump()))
        return conversation

    def get(self, conversation_id: str) -> Optional[Conversation]:
        row = self.fetch_one(
            select(self.conversations).where(self.conversations.c.id == conversation_id)
        )
        return _conversation_from_row(row) if row else None

    def list_for_customer(self, customer_id: str) -> List[Conversation]:
        stmt = (
            select(self.conversations)
            .where(self.conversations.c.customer_id == customer_id)
            .order_by(self.conversations.c.updated_at.desc(), self.conversations.c.seq.desc())
        )
        return [_conversation_from_row(row) for row in self.fetch_all(stmt)]

    def add_message(self, message: Message) -> Optional[Message]:
        with self.engine.begin() as conn:
            row = self._locked_row(
                conn, self.conversations, self.conversations.c.id, message.conversation_id
            )
            if row is None:
                return None
            now = utcnow()
            result = conn.execute(
                insert(self.messages).values(
                    id=message.id,
                    conversation_id=message.conversation_id,
                    sender_type=message.sender_type.value,
                    message_text=message.text,
                    file_name=message.attachment_name,
                    file_url=message.attachment_ref,
                    created_at=now,
                )
            )
            conn.execute(
                update(self.conversations)
                .where(self.conversations.c.id == message.conversation_id)
                .values(updated_at=now)
            )
        return message.model_copy(
            update={"sequence": result.inserted_primary_key[0], "created_at": now}
        )

    def list_messages(self, conversation_id: str) -> Optional[List[Message]]:
        if self.get(conversation_id) is None:
            return None
        stmt = (
            select(self.messages)
            .where(self.messages.c.conversation_id == conversation_id)
            .order_by(self.messages.c.seq)
        )
        return [_message_from_row(row) for row in self.fetch_all(stmt)]

    def rename_if_title(
        self, conversation_id: str, expected_title: str, new_title: str
    ) -> Optional[bool]:
        result = self.execute(
            update(self.conversations)
            .where(
                self.conversations.c.id == conversation_id,
                self.conversations.c.title == expected_title,
            )
            .values(title=new_title, updated_at=utcnow())
        )
        if result.rowcount:
            return True
        return False if self.get(conversation_id) else None

    def delete(self, conversation_id: str) -> bool:
        with self.engine.begin() as conn:
            conn.execute(
                delete(self.messages).where(self.messages.c.conversation_id == conversation_id)
            )
            result = conn.execute(
                delete(self.conversations).where(self.conversations.c.id == conversation_id)
            )
            return result.rowcount > 0


class SqlTicketRepository(PostgresRepository, TicketRepository):
    table = schema.customer_queries

    def add(self, ticket: Ticket) -> Ticket:
        result = self.execute(
            insert(self.table).values(
                id=ticket.id,
                customer_id=ticket.customer_id,
                query_text=ticket.query_text,
                response_text=ticket.response_text,
                status=ticket.status.value,
                file_name=ticket.attachment_name,
                file_url=ticket.attachment_ref,
                created_at=ticket.created_at,
                updated_at=ticket.updated_at,
            )
        )
        return ticket.model_copy(update={"sequence": result.inserted_primary_key[0]})

    def get(self, ticket_id: str) -> Optional[Ticket]:
        row = self.fetch_one(select(self.table).where(self.table.c.id == ticket_id))
        return _ticket_from_row(row) if row else None

    def list(self, customer_id: Optional[str] = None) -> List[Ticket]:
        stmt = select(self.table).order_by(
            self.table.c.created_at.desc(), self.table.c.seq.desc()
        )
        if customer_id is not None:
            stmt = stmt.where(self.table.c.customer_id == customer_id)
        return [_ticket_from_row(row) for row in self.fetch_all(stmt)]

    def update(self, ticket_id: str, mutator: Callable[[Ticket], Ticket]) -> Optional[Ticket]:
        with self.engine.begin() as conn:
            row = self._locked_row(conn, self.table, self.table.c.id, ticket_id)
            if row is None:
                return None
            changed = mutator(_ticket_from_row(row))
            conn.execute(
                update(self.table)
                .where(self.table.c.id == ticket_id)
                .values(
                    response_text=changed.response_text,
                    status=changed.status.value,
                    updated_at=changed.updated_at,
                )
            )
            return changed

    def count_by_status(self, status: TicketStatus) -> int:
        stmt = select(func.count()).select_from(self.table).where(
            self.table.c.status == status.value
        )
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar() or 0


class SqlProfileRepository(PostgresRepository, ProfileRepository):
    table = schema.profiles

    def upsert(self, profile: Profile) -> Profile:
        values = {
            "first_name": profile.first_name,
            "last_name": profile.last_name,
            "role": profile.role.value,
        }
        with self.engine.begin() as conn:
            result = conn.execute(
                update(self.table).where(self.table.c.user_id == profile.user_id).values(**values)
            )
            if not result.rowcount:
                conn.execute(insert(self.table).values(user_id=profile.user_id, **values))
        return profile

    def get(self, user_id: str) -> Optional[Profile]:
        row = self.fetch_one(select(self.table).where(self.table.c.user_id == user_id))
        return Profile(**row) if row else None

    def display_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        wanted = list(set(user_ids))
        if not wanted:
            return {}
        rows = self.fetch_all(select(self.table).where(self.table.c.user_id.in_(wanted)))
        return {row["user_id"]: Profile(**row).display_name for row in rows}

    def count(self, role: Role) -> int:
        stmt = select(func.count()).select_from(self.table).where(
            self.table.c.role == role.value
        )
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar() or 0
