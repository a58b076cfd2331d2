import asyncio
import errno
import socket
from unittest.mock import AsyncMock

import pytest

from tello_node.drivers.tello.session import TelloNode
from tello_node.errors import (
    BindError,
    BusyError,
    CommandTimeoutError,
    TelloNodeError,
    TransportError,
    UnexpectedResponseError,
)


@pytest.mark.asyncio
async def test_query_does_not_connect(node, drone):
    assert node.is_connected is False
    assert node.connection.command_bound is False
    assert node.command_address is None
    assert drone.received == []


@pytest.mark.asyncio
async def test_connect_twice_binds_once(node, monkeypatch):
    spy = AsyncMock(wraps=node._channel.bind)
    monkeypatch.setattr(node._channel, "bind", spy)

    await node.connect(auto_command=False)
    await node.connect(auto_command=False)

    assert spy.await_count == 1
    assert node.is_connected
    assert node.connection.command_bound
    assert node.connection.command_ready


@pytest.mark.asyncio
async def test_concurrent_connect_shares_pending_bind(node, monkeypatch):
    spy = AsyncMock(wraps=node._channel.bind)
    monkeypatch.setattr(node._channel, "bind", spy)

    await asyncio.gather(node.connect(auto_command=False), node.connect(auto_command=False))

    assert spy.await_count == 1


@pytest.mark.asyncio
async def test_connect_performs_handshake_once(node, drone):
    await node.connect()
    await node.connect()
    assert drone.received == ["command"]


@pytest.mark.asyncio
async def test_reply_is_trimmed_and_flag_cleared(node, drone):
    drone.replies["battery?"] = " 87 \r\n"
    await node.connect(auto_command=False)

    assert await node.send("battery?") == "87"
    assert node.connection.sending is False


@pytest.mark.asyncio
async def test_send_while_outstanding_is_busy(node, drone):
    drone.replies["takeoff"] = ("ok", 0.1)
    await node.connect(auto_command=False)

    first = asyncio.create_task(node.send("takeoff"))
    await asyncio.sleep(0.02)
    assert node.connection.sending is True

    with pytest.raises(BusyError):
        await node.send("battery?")

    # 原事务不受影响
    assert await first == "ok"
    assert drone.received == ["takeoff"]
    assert node.connection.sending is False


@pytest.mark.asyncio
async def test_timeout_then_next_send_accepted(make_config, drone):
    drone.replies["land"] = None
    async with TelloNode(make_config(timeout=100)) as node:
        await node.connect(auto_command=False)

        with pytest.raises(CommandTimeoutError) as excinfo:
            await node.send("land")
        assert excinfo.value.command == "land"
        assert excinfo.value.address == ("127.0.0.1", drone.port)
        assert 'timeout reached while sending command "land"' in str(excinfo.value)
        assert node.connection.sending is False

        assert await node.send("battery?") == "ok"


@pytest.mark.asyncio
async def test_late_reply_is_attributed_to_next_command(make_config, drone):
    # 没有事务号：takeoff 的迟到 'ok' 会结算正在等待的 battery?
    drone.replies["takeoff"] = ("ok", 0.3)
    drone.replies["battery?"] = None
    async with TelloNode(make_config(timeout=200)) as node:
        await node.connect(auto_command=False)

        with pytest.raises(CommandTimeoutError):
            await node.send("takeoff")
        assert await node.send("battery?") == "ok"


@pytest.mark.asyncio
async def test_unsolicited_reply_is_dropped(node, drone):
    drone.replies["battery?"] = "87"
    await node.connect(auto_command=False)

    drone.transport.sendto(b"stray", node.command_address)
    await asyncio.sleep(0.05)

    assert await node.send("battery?") == "87"


@pytest.mark.asyncio
async def test_transport_failure_surfaces(make_config):
    # 未开 SO_BROADCAST 时向广播地址发包，内核返回 EACCES
    async with TelloNode(make_config(tello="255.255.255.255", timeout=2000)) as node:
        await node.connect(auto_command=False)
        loop = asyncio.get_running_loop()
        started = loop.time()

        with pytest.raises(TransportError) as excinfo:
            await node.send("battery?")

        assert loop.time() - started < 1.0
        assert isinstance(excinfo.value.__cause__, PermissionError)
        assert node.connection.sending is False
        assert node._channel._timer is None


@pytest.mark.asyncio
async def test_error_received_while_in_flight(node, drone):
    drone.replies["land"] = None
    await node.connect(auto_command=False)

    pending = asyncio.create_task(node.send("land"))
    await asyncio.sleep(0.02)
    cause = ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")
    node._channel._on_error(cause)

    with pytest.raises(TransportError) as excinfo:
        await pending
    assert excinfo.value.__cause__ is cause
    assert node.connection.sending is False
    assert node._channel._timer is None


@pytest.mark.asyncio
async def test_command_accepts_ok(node, drone):
    await node.command()
    assert drone.received == ["command"]


@pytest.mark.asyncio
async def test_command_rejects_other_reply(node, drone):
    drone.replies["command"] = "error"
    with pytest.raises(UnexpectedResponseError) as excinfo:
        await node.command()
    assert excinfo.value.response == "error"


@pytest.mark.asyncio
async def test_implicit_connect_skips_handshake_for_command(node, drone):
    assert await node.send("command") == "ok"
    assert drone.received == ["command"]


@pytest.mark.asyncio
async def test_implicit_connect_handshakes_first(node, drone):
    drone.replies["battery?"] = "55"
    assert await node.send("battery?") == "55"
    assert drone.received == ["command", "battery?"]


@pytest.mark.asyncio
async def test_bind_failure_is_terminal(make_config):
    blocker = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    blocker.bind(("127.0.0.1", 0))
    try:
        port = blocker.getsockname()[1]
        async with TelloNode(make_config(command_bind_port=port)) as node:
            with pytest.raises(BindError):
                await node.connect()
            with pytest.raises(BindError):
                await node.connect()
            with pytest.raises(BindError):
                await node.send("battery?")
            assert node.connection.command_bound is True
            assert node.connection.command_ready is False
            assert node.is_connected is False
    finally:
        blocker.close()


@pytest.mark.asyncio
async def test_closed_session_cannot_be_reused(node):
    await node.connect(auto_command=False)
    await node.close()
    await node.close()
    with pytest.raises(TelloNodeError):
        await node.send("battery?")
