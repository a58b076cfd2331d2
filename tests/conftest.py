import asyncio
import socket
from typing import Dict, List, Optional, Tuple, Union

import pytest
import pytest_asyncio

from tello_node.config import TelloNodeConfig
from tello_node.drivers.tello.session import TelloNode

Reply = Union[str, Tuple[str, float], None]


class FakeDrone(asyncio.DatagramProtocol):
    """本地回环上的假 Tello：按 replies 表回包，未登记的命令回 'ok'，None 表示不回。"""

    def __init__(self) -> None:
        self.replies: Dict[str, Reply] = {}
        self.received: List[str] = []
        self.transport: Optional[asyncio.DatagramTransport] = None

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        cmd = data.decode()
        self.received.append(cmd)
        reply = self.replies.get(cmd, "ok")
        if reply is None:
            return
        text, delay = reply if isinstance(reply, tuple) else (reply, 0.0)
        if delay:
            asyncio.get_running_loop().call_later(delay, self.transport.sendto, text.encode(), addr)
        else:
            self.transport.sendto(text.encode(), addr)

    @property
    def port(self) -> int:
        return self.transport.get_extra_info("sockname")[1]


@pytest_asyncio.fixture
async def drone():
    loop = asyncio.get_running_loop()
    transport, proto = await loop.create_datagram_endpoint(FakeDrone, local_addr=("127.0.0.1", 0))
    yield proto
    transport.close()


@pytest.fixture
def make_config(drone):
    def _make(**overrides) -> TelloNodeConfig:
        params = dict(
            tello="127.0.0.1",
            command=drone.port,
            state=0,
            server="127.0.0.1",
            timeout=300,
            silent=True,
            command_bind_port=0,
        )
        params.update(overrides)
        return TelloNodeConfig(**params)

    return _make


@pytest_asyncio.fixture
async def node(make_config):
    n = TelloNode(make_config())
    yield n
    await n.close()


@pytest.fixture
def udp_sender():
    """往遥测端口推报文用的普通 UDP socket。"""
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    yield s
    s.close()


async def wait_until(pred, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not pred():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)
