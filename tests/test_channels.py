"""Tests for in-process and Redis channels."""

import asyncio

import fakeredis
import pytest

from scopebus.channels import Channel, ChannelRegistry, LocalChannel, RedisChannel
from scopebus.errors import ChannelClosed, NoEventLoop
from scopebus.events import EventDispatcher, EventHandler


class TestLocalChannel:
    @pytest.mark.asyncio
    async def test_post_reaches_peers_but_not_sender(self, drain):
        registry = ChannelRegistry()
        a = registry.open("tabs")
        b = registry.open("tabs")
        c = registry.open("other")
        received = {"a": [], "b": [], "c": []}
        a.on_message(received["a"].append)
        b.on_message(received["b"].append)
        c.on_message(received["c"].append)

        a.post({"n": 1})
        assert received["b"] == []

        await drain()
        assert received == {"a": [], "b": [{"n": 1}], "c": []}

    @pytest.mark.asyncio
    async def test_messages_are_copied(self, drain):
        registry = ChannelRegistry()
        a = registry.open("tabs")
        b = registry.open("tabs")
        received = []
        b.on_message(received.append)
        message = {"items": [1]}
        a.post(message)
        message["items"].append(2)
        await drain()
        assert received == [{"items": [1]}]

    @pytest.mark.asyncio
    async def test_closed_peer_gets_nothing(self, drain):
        registry = ChannelRegistry()
        a = registry.open("tabs")
        b = registry.open("tabs")
        received = []
        b.on_message(received.append)
        a.post("queued before close")
        b.close()
        await drain()
        assert received == []
        assert registry.channels() == (a,)

    def test_post_on_closed_channel_fails(self):
        registry = ChannelRegistry()
        a = registry.open("tabs")
        a.close()
        a.close()
        with pytest.raises(ChannelClosed):
            a.post("x")

    def test_close_all_closes_in_reverse_order(self):
        registry = ChannelRegistry()
        closed = []
        channels = [registry.open(name) for name in ("a", "b", "c")]
        for channel in channels:
            original = channel.close

            def close(original=original, name=channel.name):
                closed.append(name)
                original()

            channel.close = close
        assert registry.close_all() == 3
        assert closed == ["c", "b", "a"]
        assert registry.channels() == ()

    def test_registry_is_a_channel_factory(self):
        registry = ChannelRegistry()
        channel = registry("tabs")
        assert isinstance(channel, LocalChannel)
        assert isinstance(channel, Channel)
        with pytest.raises(ValueError):
            registry.open("")

    @pytest.mark.asyncio
    async def test_default_registry_is_used_by_dispatchers(self, default_registry, drain):
        constraints = {"updated": {"broadcasted": True}}
        a = EventDispatcher(constraints, broadcast_enabled=True, channel_name="demo")
        b = EventDispatcher(constraints, broadcast_enabled=True, channel_name="demo")
        seen = []
        b.subscribe("updated", EventHandler(handle_event=seen.append))
        assert len(default_registry.channels("demo")) == 2

        a.broadcast("updated", payload=[1, 2])
        await drain()
        assert seen[0].payload == [1, 2]


async def _wait_for(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            return False
        await asyncio.sleep(0.01)
    return True


class TestRedisChannel:
    @pytest.mark.asyncio
    async def test_post_reaches_other_endpoints_only(self):
        server = fakeredis.FakeServer()
        a = RedisChannel("tabs", client=fakeredis.FakeRedis(server=server), prefix="test")
        b = RedisChannel("tabs", client=fakeredis.FakeRedis(server=server), prefix="test")
        received_a, received_b = [], []
        a.on_message(received_a.append)
        b.on_message(received_b.append)
        try:
            assert a.topic == "test:tabs"
            a.post({"n": 1})
            assert await _wait_for(lambda: received_b)
            await asyncio.sleep(0.05)
            assert received_b == [{"n": 1}]
            assert received_a == []
        finally:
            a.close()
            b.close()

    @pytest.mark.asyncio
    async def test_dispatchers_over_redis(self):
        server = fakeredis.FakeServer()

        def factory(name):
            return RedisChannel(name, client=fakeredis.FakeRedis(server=server), prefix="test")

        constraints = {"updated": {"broadcasted": True}}
        a = EventDispatcher(constraints, broadcast_enabled=True, channel_name="demo", channel_factory=factory)
        b = EventDispatcher(constraints, broadcast_enabled=True, channel_name="demo", channel_factory=factory)
        seen = []
        b.subscribe("updated", EventHandler(handle_event=seen.append))
        try:
            a.broadcast("updated", payload={"message": "ouch"})
            assert await _wait_for(lambda: seen)
            assert seen[0].is_remote_subject is True
            assert seen[0].payload == {"message": "ouch"}
        finally:
            a.dispose()
            b.dispose()

    @pytest.mark.asyncio
    async def test_closed_channel_rejects_post(self):
        channel = RedisChannel("tabs", client=fakeredis.FakeRedis(), prefix="test")
        channel.close()
        assert channel.closed is True
        with pytest.raises(ChannelClosed):
            channel.post("x")


async def _open(registry, name):
    return registry.open(name)


class TestLocalChannelLoops:
    def test_post_without_any_loop_fails_before_scheduling(self):
        loop = asyncio.new_event_loop()
        try:
            registry = ChannelRegistry()
            sender = registry.open("tabs")
            with_loop = loop.run_until_complete(_open(registry, "tabs"))
            without_loop = registry.open("tabs")
            received = []
            with_loop.on_message(received.append)
            without_loop.on_message(received.append)

            with pytest.raises(NoEventLoop) as exc_info:
                sender.post({"n": 1})
            with pytest.raises(NoEventLoop):
                sender.check_post()

            loop.run_until_complete(asyncio.sleep(0))
            assert received == []
            assert exc_info.value.name == "tabs"
            assert isinstance(exc_info.value, RuntimeError)
        finally:
            loop.close()

    def test_registry_loop_serves_synchronous_programs(self):
        loop = asyncio.new_event_loop()
        try:
            registry = ChannelRegistry(loop=loop)
            a = registry.open("tabs")
            b = registry.open("tabs")
            received = []
            b.on_message(received.append)
            a.check_post()
            a.post("x")
            assert received == []
            loop.run_until_complete(asyncio.sleep(0))
            assert received == ["x"]
        finally:
            loop.close()

    def test_post_without_peers_needs_no_loop(self):
        registry = ChannelRegistry()
        lonely = registry.open("tabs")
        lonely.post("nobody listens")
        lonely.check_post()
