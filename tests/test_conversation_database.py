import pytest

from corprex_chat.conversation_database.data_models import Conversation, Message, MessageType
from corprex_chat.conversation_database.in_memory import InMemoryConversationDatabase, InMemoryMessageDatabase
from corprex_chat.conversation_database.sqlite import (
    SQLiteConversationDatabase,
    SQLiteMessageDatabase,
    SQLiteStore,
)
from corprex_chat.llms.base import Roles


@pytest.fixture(params=["memory", "sqlite"])
def databases(request, tmp_path):
    if request.param == "memory":
        yield InMemoryConversationDatabase(), InMemoryMessageDatabase()
        return
    store = SQLiteStore(tmp_path / "chat.db")
    yield SQLiteConversationDatabase(store), SQLiteMessageDatabase(store)
    store.close()


def _conversation(conversation_id: str, user_id: str = "user_1", updated: int = 1) -> Conversation:
    return Conversation(
        id=conversation_id,
        user_id=user_id,
        title=f"Conversation {conversation_id}",
        model="gpt-4",
        create_timestamp=1,
        update_timestamp=updated,
    )


def _message(content: str, role: Roles = Roles.USER, ts: int = 10, **kwargs) -> Message:
    return Message(conversation_id="c1", role=role, content=content, create_timestamp=ts, **kwargs)


async def test_conversations_are_listed_newest_first(databases):
    conversations, _ = databases
    await conversations.create_conversation(_conversation("c1", updated=100))
    await conversations.create_conversation(_conversation("c2", updated=300))
    await conversations.create_conversation(_conversation("c3", updated=200))
    await conversations.create_conversation(_conversation("other", user_id="user_2"))

    listed = await conversations.get_conversations_by_user_id("user_1")

    assert [c.id for c in listed] == ["c2", "c3", "c1"]


async def test_update_conversation(databases):
    conversations, _ = databases
    await conversations.create_conversation(_conversation("c1"))

    await conversations.update_conversation(_conversation("c1", updated=500).model_copy(update={"model": "claude-x"}))

    stored = await conversations.get_conversation_by_id("c1")
    assert stored.update_timestamp == 500
    assert stored.model == "claude-x"


async def test_missing_records_raise(databases):
    conversations, messages = databases
    with pytest.raises(ValueError):
        await conversations.get_conversation_by_id("nope")
    with pytest.raises(ValueError):
        await conversations.update_conversation(_conversation("nope"))
    with pytest.raises(ValueError):
        await messages.get_message_by_id("nope")
    assert not await conversations.delete_conversation("nope")
    assert not await messages.delete_message("nope")


async def test_messages_keep_creation_order(databases):
    conversations, messages = databases
    await conversations.create_conversation(_conversation("c1"))
    await messages.create_message(_message("first", ts=10))
    await messages.create_message(_message("second", Roles.ASSISTANT, ts=10, model="gpt-4"))
    await messages.create_message(_message("third", ts=20))

    stored = await messages.get_messages_by_conversation_id("c1")

    assert [m.content for m in stored] == ["first", "second", "third"]
    assert stored[1].model == "gpt-4"
    assert all(m.id for m in stored)


async def test_update_message_sets_content_and_edited(databases):
    conversations, messages = databases
    await conversations.create_conversation(_conversation("c1"))
    created = await messages.create_message(_message("typo"))

    updated = await messages.update_message(created.model_copy(update={"content": "fixed", "edited": True}))

    assert updated.content == "fixed"
    assert updated.edited
    assert updated.create_timestamp == created.create_timestamp


async def test_image_message_round_trip(databases):
    conversations, messages = databases
    await conversations.create_conversation(_conversation("c1"))
    created = await messages.create_message(
        _message(
            "https://images.example/a.png",
            Roles.ASSISTANT,
            type=MessageType.IMAGE,
            image_url="https://images.example/a.png",
        )
    )

    stored = await messages.get_message_by_id(created.id)

    assert stored.type == MessageType.IMAGE
    assert stored.image_url == "https://images.example/a.png"


async def test_sqlite_cascades_message_delete(tmp_path):
    store = SQLiteStore(tmp_path / "nested" / "chat.db")
    conversations, messages = SQLiteConversationDatabase(store), SQLiteMessageDatabase(store)
    await conversations.create_conversation(_conversation("c1"))
    await messages.create_message(_message("hello"))

    assert await conversations.delete_conversation("c1")

    assert await messages.get_messages_by_conversation_id("c1") == []
    store.close()


async def test_sqlite_persists_across_connections(tmp_path):
    path = tmp_path / "chat.db"
    store = SQLiteStore(path)
    await SQLiteConversationDatabase(store).create_conversation(_conversation("c1"))
    store.close()

    reopened = SQLiteStore(path)
    assert (await SQLiteConversationDatabase(reopened).get_conversation_by_id("c1")).title == "Conversation c1"
    reopened.close()
