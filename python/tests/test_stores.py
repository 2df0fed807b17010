"""Tests for the entity stores.

Tests cover:
- Idempotent upsert (created on first apply, updated after)
- Chat updated_at never moves backwards on overwrite
- find_since is strictly-after, owner-scoped, and skips tombstones
- Message paging and range queries
- Soft delete keeps the chat row; hard deletes remove messages
- Timestamps come back timezone-aware UTC
- transaction() commits the block or rolls all of it back
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from chatsync.db.models import Chat, Message
from chatsync.db.session import transaction
from chatsync.db.stores import ChatStore, MemoryStore, MessageStore
from tests.factories import (
    count_rows,
    create_test_chat,
    create_test_memory,
    create_test_message,
)
from tests.helpers import ts


def _chat_values(owner_id: str, chat_id: int, title: str, updated: int) -> dict:
    return {
        "owner_id": owner_id,
        "id": chat_id,
        "title": title,
        "created_at": ts(0),
        "updated_at": ts(updated),
    }


class TestUpsert:
    def test_first_apply_creates(self, db_session: Session, owner_id: str):
        chat, created = ChatStore(db_session).upsert(_chat_values(owner_id, 1, "A", 5))
        db_session.commit()

        assert created is True
        assert chat.id == 1
        assert count_rows(db_session, Chat, owner_id) == 1

    def test_second_apply_updates_in_place(self, db_session: Session, owner_id: str):
        store = ChatStore(db_session)
        store.upsert(_chat_values(owner_id, 1, "A", 5))
        chat, created = store.upsert(_chat_values(owner_id, 1, "A", 5))
        db_session.commit()

        assert created is False
        assert chat.title == "A"
        assert chat.updated_at == ts(5)
        assert count_rows(db_session, Chat, owner_id) == 1

    def test_overwrite_replaces_title(self, db_session: Session, owner_id: str):
        store = ChatStore(db_session)
        store.upsert(_chat_values(owner_id, 1, "A", 5))
        chat, _ = store.upsert(_chat_values(owner_id, 1, "B", 6))

        assert chat.title == "B"
        assert chat.updated_at == ts(6)

    def test_stale_write_still_wins_title_but_not_updated_at(
        self, db_session: Session, owner_id: str
    ):
        """Last writer wins on content; updated_at stays monotonic."""
        store = ChatStore(db_session)
        store.upsert(_chat_values(owner_id, 1, "New", 10))
        chat, _ = store.upsert(_chat_values(owner_id, 1, "Old", 3))

        assert chat.title == "Old"
        assert chat.updated_at == ts(10)

    def test_created_at_is_not_overwritten(self, db_session: Session, owner_id: str):
        store = ChatStore(db_session)
        store.upsert(_chat_values(owner_id, 1, "A", 5))
        values = _chat_values(owner_id, 1, "A", 6)
        values["created_at"] = ts(4)
        chat, _ = store.upsert(values)

        assert chat.created_at == ts(0)

    def test_update_values_used_only_when_row_exists(self, db_session: Session, owner_id: str):
        store = ChatStore(db_session)
        values = _chat_values(owner_id, 1, "A", 5)

        created_chat, _ = store.upsert(values, update_values={"title": "B", "updated_at": ts(9)})
        assert (created_chat.title, created_chat.updated_at) == ("A", ts(5))

        chat, created = store.upsert(values, update_values={"title": "B", "updated_at": ts(9)})
        assert created is False
        assert (chat.title, chat.updated_at) == ("B", ts(9))

    def test_memory_overwrite_is_unconditional(self, db_session: Session, owner_id: str):
        create_test_memory(db_session, owner_id, 1, content="new", updated_at=ts(10))

        memory, created = MemoryStore(db_session).upsert(
            {
                "owner_id": owner_id,
                "id": 1,
                "content": "old",
                "created_at": ts(0),
                "updated_at": ts(2),
            }
        )

        assert created is False
        assert memory.content == "old"
        assert memory.updated_at == ts(2)


class TestChatStore:
    def test_find_since_is_strictly_after(self, db_session: Session, owner_id: str):
        create_test_chat(db_session, owner_id, 1, updated_at=ts(100))
        create_test_chat(db_session, owner_id, 2, updated_at=ts(101))

        chats = ChatStore(db_session).find_since(owner_id, ts(100))

        assert [c.id for c in chats] == [2]

    def test_find_since_none_returns_all_live_newest_first(
        self, db_session: Session, owner_id: str
    ):
        create_test_chat(db_session, owner_id, 1, updated_at=ts(1))
        create_test_chat(db_session, owner_id, 2, updated_at=ts(3))
        create_test_chat(db_session, owner_id, 3, updated_at=ts(2))
        create_test_chat(db_session, owner_id, 4, updated_at=ts(9), deleted_at=ts(9))

        chats = ChatStore(db_session).find_since(owner_id, None)

        assert [c.id for c in chats] == [2, 3, 1]

    def test_find_since_is_owner_scoped(
        self, db_session: Session, owner_id: str, other_owner_id: str
    ):
        create_test_chat(db_session, owner_id, 1, updated_at=ts(5))
        create_test_chat(db_session, other_owner_id, 1, updated_at=ts(5))

        chats = ChatStore(db_session).find_since(owner_id, None)

        assert [(c.owner_id, c.id) for c in chats] == [(owner_id, 1)]

    def test_count_live_ignores_tombstones(self, db_session: Session, owner_id: str):
        create_test_chat(db_session, owner_id, 1)
        create_test_chat(db_session, owner_id, 2, deleted_at=ts(1))

        assert ChatStore(db_session).count_live(owner_id) == 1

    def test_find_live_and_find_by_key(self, db_session: Session, owner_id: str):
        create_test_chat(db_session, owner_id, 1, deleted_at=ts(1))
        store = ChatStore(db_session)

        assert store.find_live(owner_id, 1) is None
        tombstone = store.find_by_key(owner_id=owner_id, id=1)
        assert tombstone is not None
        assert tombstone.deleted_at is not None

    def test_soft_delete_keeps_row_and_bumps_updated_at(
        self, db_session: Session, owner_id: str
    ):
        create_test_chat(db_session, owner_id, 1, updated_at=ts(5))
        store = ChatStore(db_session)
        chat = store.find_live(owner_id, 1)

        store.soft_delete(chat, ts(50))
        db_session.commit()

        assert chat.deleted_at == ts(50)
        assert chat.updated_at == ts(50)
        assert count_rows(db_session, Chat, owner_id) == 1

    def test_soft_delete_all(self, db_session: Session, owner_id: str, other_owner_id: str):
        create_test_chat(db_session, owner_id, 1)
        create_test_chat(db_session, owner_id, 2)
        create_test_chat(db_session, owner_id, 3, deleted_at=ts(1))
        create_test_chat(db_session, other_owner_id, 1)

        assert ChatStore(db_session).soft_delete_all(owner_id, ts(20)) == 2
        db_session.commit()

        assert ChatStore(db_session).count_live(owner_id) == 0
        assert ChatStore(db_session).count_live(other_owner_id) == 1

    def test_touch_never_moves_backwards(self, db_session: Session, owner_id: str):
        create_test_chat(db_session, owner_id, 1, updated_at=ts(10))
        store = ChatStore(db_session)
        chat = store.find_live(owner_id, 1)

        store.touch(chat, ts(5))
        assert chat.updated_at == ts(10)

        store.touch(chat, ts(11))
        assert chat.updated_at == ts(11)


class TestMessageStore:
    def test_find_since_filters_chats_and_orders_oldest_first(
        self, db_session: Session, owner_id: str
    ):
        create_test_chat(db_session, owner_id, 1)
        create_test_chat(db_session, owner_id, 2)
        create_test_chat(db_session, owner_id, 3)
        create_test_message(db_session, owner_id, 1, 1, timestamp=ts(100))
        create_test_message(db_session, owner_id, 1, 2, timestamp=ts(103))
        create_test_message(db_session, owner_id, 2, 1, timestamp=ts(102))
        create_test_message(db_session, owner_id, 3, 1, timestamp=ts(104))

        messages = MessageStore(db_session).find_since(owner_id, ts(100), [1, 2])

        assert [(m.chat_id, m.id) for m in messages] == [(2, 1), (1, 2)]

    def test_find_since_without_chats_is_empty(self, db_session: Session, owner_id: str):
        assert MessageStore(db_session).find_since(owner_id, ts(0), []) == []

    def test_list_for_chat_pages_from_newest(self, db_session: Session, owner_id: str):
        create_test_chat(db_session, owner_id, 1)
        for i in range(1, 6):
            create_test_message(db_session, owner_id, 1, i, timestamp=ts(i))
        store = MessageStore(db_session)

        newest = store.list_for_chat(owner_id, 1, limit=2)
        older = store.list_for_chat(owner_id, 1, limit=2, offset=2)

        assert [m.id for m in newest] == [4, 5]
        assert [m.id for m in older] == [2, 3]

    def test_hard_delete(self, db_session: Session, owner_id: str):
        create_test_chat(db_session, owner_id, 1)
        create_test_message(db_session, owner_id, 1, 1)
        store = MessageStore(db_session)

        assert store.hard_delete(owner_id, 1, 1) is True
        assert store.hard_delete(owner_id, 1, 1) is False

    def test_hard_delete_for_chat(self, db_session: Session, owner_id: str):
        create_test_chat(db_session, owner_id, 1)
        create_test_chat(db_session, owner_id, 2)
        create_test_message(db_session, owner_id, 1, 1)
        create_test_message(db_session, owner_id, 1, 2)
        create_test_message(db_session, owner_id, 2, 1)

        assert MessageStore(db_session).hard_delete_for_chat(owner_id, 1) == 2
        db_session.commit()

        assert count_rows(db_session, Message, owner_id) == 1


class TestMemoryStore:
    def test_list_all_newest_created_first(self, db_session: Session, owner_id: str):
        create_test_memory(db_session, owner_id, 1, created_at=ts(1))
        create_test_memory(db_session, owner_id, 2, created_at=ts(3))
        create_test_memory(db_session, owner_id, 3, created_at=ts(2))

        assert [m.id for m in MemoryStore(db_session).list_all(owner_id)] == [2, 3, 1]

    def test_find_since(self, db_session: Session, owner_id: str):
        create_test_memory(db_session, owner_id, 1, updated_at=ts(5))
        create_test_memory(db_session, owner_id, 2, updated_at=ts(6))

        assert [m.id for m in MemoryStore(db_session).find_since(owner_id, ts(5))] == [2]


class TestTimestamps:
    def test_round_trip_is_utc_aware(self, db_session: Session, owner_id: str):
        plus_two = timezone(timedelta(hours=2))
        local = datetime(2024, 6, 1, 12, 0, tzinfo=plus_two)
        create_test_chat(db_session, owner_id, 1, created_at=local)

        chat = ChatStore(db_session).find_by_key(owner_id=owner_id, id=1)

        assert chat.created_at.tzinfo is not None
        assert chat.created_at.utcoffset() == timedelta(0)
        assert chat.created_at == datetime(2024, 6, 1, 10, 0, tzinfo=UTC)


class TestTransaction:
    def test_commits_on_success(self, db_session: Session, owner_id: str):
        with transaction(db_session):
            ChatStore(db_session).upsert(_chat_values(owner_id, 1, "Kept", 1))

        assert count_rows(db_session, Chat, owner_id) == 1

    def test_rolls_back_whole_block_on_error(self, db_session: Session, owner_id: str):
        create_test_chat(db_session, owner_id, 1, title="Before", updated_at=ts(1))
        store = ChatStore(db_session)

        with pytest.raises(RuntimeError), transaction(db_session):
            store.upsert(_chat_values(owner_id, 1, "During", 2))
            store.upsert(_chat_values(owner_id, 2, "New", 2))
            raise RuntimeError("abort")

        db_session.expire_all()
        assert store.find_by_key(owner_id=owner_id, id=1).title == "Before"
        assert count_rows(db_session, Chat, owner_id) == 1
