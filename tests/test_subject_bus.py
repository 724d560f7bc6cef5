"""Tests for the scoped Bus/Node layer and subject base classes."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from scopebus.channels import ChannelRegistry
from scopebus.errors import InvalidArgument, NotLocalEvent, UnknownEventType
from scopebus.events import EventHandler
from scopebus.subject import BroadcastedSubject, Bus, Node, Subject

ROOT_CONSTRAINTS = {
    "database.opened": {"broadcasted": True},
    "database.collectionsCreated": {"broadcasted": True},
    "database.collection.recordsCreated": {},
    "database.collection.recordsUpdated": {},
    "database.collection.recordsDeleted": {},
}

COLLECTION = {"databaseName": "metaDatabase", "name": "akmal", "primaryKey": "__id"}


@pytest.fixture
def bus(recording_factory):
    return Bus(
        ROOT_CONSTRAINTS,
        broadcast_enabled=True,
        channel_name="database",
        channel_factory=recording_factory,
    )


class TestTranslation:
    def test_node_translates_both_ways(self, bus):
        node = bus.use("database.collection")
        assert node.as_root_type("recordsCreated") == "database.collection.recordsCreated"
        assert node.as_node_type("database.collection.recordsCreated") == "recordsCreated"

    def test_root_scope_is_identity(self, bus):
        root = bus.use("")
        assert root.as_root_type("database.opened") == "database.opened"
        assert root.as_node_type("database.opened") == "database.opened"

    def test_type_outside_scope_is_rejected(self, bus):
        node = bus.use("database.collection")
        with pytest.raises(UnknownEventType):
            node.as_node_type("database.opened")

    def test_nested_use(self, bus):
        node = bus.use("database").use("collection")
        assert node.scope == "database.collection"
        assert node.has("recordsDeleted")

    def test_has_uses_root_types(self, bus):
        database = bus.use("database")
        assert database.has("opened")
        assert database.has("collection.recordsUpdated")
        assert not database.has("recordsUpdated")
        assert not database.has(3)


@given(
    scope=st.lists(st.from_regex(r"[a-z]{1,8}", fullmatch=True), min_size=0, max_size=4),
    local=st.from_regex(r"[a-zA-Z.]{1,16}", fullmatch=True),
)
def test_translation_round_trip(scope, local):
    node = Node(Bus({}), ".".join(scope))
    assert node.as_node_type(node.as_root_type(local)) == local


class TestNodeDispatch:
    def test_node_handlers_see_local_types(self, bus):
        seen = []
        node = bus.use("database.collection")
        node.subscribe(
            ["recordsCreated", "recordsUpdated", "recordsDeleted"],
            EventHandler(handle_event=seen.append),
        )

        node.dispatch("recordsCreated", payload={"subject": COLLECTION, "records": []}).dispatch(
            "recordsDeleted", payload={"subject": COLLECTION, "primaryKeyValues": []}
        )

        assert [e.type for e in seen] == ["recordsCreated", "recordsDeleted"]
        assert seen[0].payload["subject"] == COLLECTION

    def test_bus_and_node_share_one_dispatcher(self, bus):
        root_seen, node_seen, db_seen = [], [], []
        bus.subscribe(
            "database.collection.recordsUpdated", EventHandler(handle_event=root_seen.append)
        )
        bus.use("database.collection").subscribe(
            "recordsUpdated", EventHandler(handle_event=node_seen.append)
        )
        bus.use("database").subscribe(
            "collection.recordsUpdated", EventHandler(handle_event=db_seen.append)
        )

        bus.dispatch("database.collection.recordsUpdated", payload={"records": []})

        assert root_seen[0].type == "database.collection.recordsUpdated"
        assert node_seen[0].type == "recordsUpdated"
        assert db_seen[0].type == "collection.recordsUpdated"
        assert root_seen[0].id == node_seen[0].id == db_seen[0].id

    def test_node_run_once(self, bus):
        seen = []
        node = bus.use("database.collection")
        node.subscribe("recordsCreated", {"handle_event": seen.append, "run_once": True})
        node.dispatch("recordsCreated").dispatch("recordsCreated")
        assert len(seen) == 1

    def test_node_unsubscribe(self, bus):
        seen = []
        node = bus.use("database.collection")
        sub = node.subscribe("recordsCreated", EventHandler(handle_event=seen.append))
        sub.unsubscribe()
        sub.unsubscribe()
        node.dispatch("recordsCreated")
        assert seen == []

    def test_node_rejects_unknown_local_types(self, bus):
        node = bus.use("database.collection")
        with pytest.raises(InvalidArgument):
            node.subscribe("opened", EventHandler(handle_event=lambda e: None))
        with pytest.raises(UnknownEventType):
            node.dispatch("opened")

    def test_node_broadcast_mirrors_root_type(self, bus, recording_factory):
        seen = []
        database = bus.use("database")
        database.subscribe("opened", EventHandler(handle_event=seen.append))
        database.broadcast("opened", payload={"subject": {"name": "meta", "version": 1}})

        assert seen[0].type == "opened"
        posted = recording_factory.channels[0].posted
        assert posted[0]["type"] == "database.opened"
        assert posted[0]["is_remote_subject"] is True

        with pytest.raises(NotLocalEvent):
            database.dispatch("opened")

    def test_inbound_message_reaches_node_handlers(self, bus, recording_factory):
        seen = []
        bus.use("database").subscribe("opened", EventHandler(handle_event=seen.append))
        message = bus.dispatcher.create_event("database.opened", {"name": "meta"}).to_dict()
        message["is_remote_subject"] = True
        recording_factory.channels[0].receive(message)
        assert seen[0].type == "opened"
        assert seen[0].is_remote_subject is True
        assert recording_factory.channels[0].posted == []

    def test_clear_and_dispose(self, bus, recording_factory):
        seen = []
        bus.use("database.collection").subscribe(
            "recordsCreated", EventHandler(handle_event=seen.append)
        )
        bus.clear()
        bus.use("database.collection").dispatch("recordsCreated")
        assert seen == []
        bus.dispose()
        assert recording_factory.channels[0].closed is True


class Collection(Subject):
    meta_name = "collection"

    def __init__(self, name):
        super().__init__({"recordsCreated": {}})
        self.name = name

    def add(self, records):
        self._dispatch("recordsCreated", payload={"records": records})


class Database(BroadcastedSubject):
    meta_name = "database"

    def __init__(self, name, channel_factory):
        super().__init__({"opened": {"broadcasted": True}}, channel_factory=channel_factory)
        self.name = name

    @property
    def unique_name(self):
        return self.name

    def open(self):
        self._broadcast("opened", payload={"name": self.name})


def test_subject_dispatches_to_subscribers():
    seen = []
    collection = Collection("akmal")
    collection.subscribe("recordsCreated", EventHandler(handle_event=seen.append))
    collection.add([1, 2])
    assert seen[0].payload == {"records": [1, 2]}


def test_subject_is_abstract():
    with pytest.raises(TypeError):
        Subject({"a": {}})


@pytest.mark.asyncio
async def test_broadcasted_subject_shares_channel(drain):
    registry = ChannelRegistry()
    here = Database("meta", registry)
    there = Database("meta", registry)
    seen = []
    there.subscribe("opened", EventHandler(handle_event=seen.append))

    here.open()
    await drain()

    assert here.channel_name == "database.meta"
    assert seen[0].payload == {"name": "meta"}
    assert seen[0].is_remote_subject is True
    here.dispose()
    there.dispose()
    assert registry.channels() == ()
