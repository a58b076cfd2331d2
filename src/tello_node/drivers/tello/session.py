# ---------------------------------------------------------------------
# TelloNode：单机单会话的驱动门面（控制通道 + 遥测通道）
# ---------------------------------------------------------------------
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Tuple

from tello_node.config import CMD_COMMAND, STATUS_OK, TelloNodeConfig, default_config
from tello_node.errors import BindError, BusyError, TelloNodeError, UnexpectedResponseError
from tello_node.logs import SessionLogger, get_logger
from tello_node.middleware.module.telemetry_buffer import TelemetryBuffer
from tello_node.middleware.module.telemetry_dispatcher import StateCallback, TelemetryDispatcher
from .command_channel import CommandChannel

logger = get_logger("driver.session")


@dataclass(frozen=True)
class ConnectionState:
    command_bound: bool  # 已发起绑定（失败也算）
    command_ready: bool
    state_bound: bool
    sending: bool


class _StateProtocol(asyncio.DatagramProtocol):
    """遥测收包：原始报文直接进 buffer 队尾。"""
    def __init__(self, buffer: TelemetryBuffer, log: SessionLogger) -> None:
        self.buffer = buffer
        self.log = log

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        self.buffer.push(data)

    def error_received(self, exc: Exception) -> None:
        self.log.error(f"state_udp_error:{exc}")


class TelloNode:
    """
    对外 API：
      connect(auto_command)  绑定控制端口，可选自动握手（发送 'command' 等 'ok'）
      send(cmd)              发送命令并等待应答文本；未连接时先隐式 connect
      command()              握手，应答必须是 'ok'
      state(cb, parse)       绑定状态端口（仅首次）并启动一个遥测分发任务
      close()                停止分发任务、释放两个 socket

    每个实例自带 socket 与遥测队列，多个实例互不影响。
    """

    def __init__(self, config: Optional[TelloNodeConfig] = None) -> None:
        self.config = config or default_config()
        self._log = SessionLogger(logger, self.config.remote, silent=self.config.silent)
        self._channel = CommandChannel(self.config.remote, self.config.timeout_s, log=self._log)
        self._buffer = TelemetryBuffer()
        self._dispatchers: List[TelemetryDispatcher] = []
        self._state_transport: Optional[asyncio.DatagramTransport] = None

        self._connecting: Optional[asyncio.Future] = None
        self._command_ready = False
        self._bind_error: Optional[BindError] = None
        self._state_bind: Optional[asyncio.Future] = None
        self._closed = False

    @staticmethod
    def default_config(silent: bool = False) -> TelloNodeConfig:
        return default_config(silent)

    async def __aenter__(self) -> "TelloNode":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ---- 状态查询（无副作用） ----

    @property
    def is_connected(self) -> bool:
        return self._command_ready

    @property
    def connection(self) -> ConnectionState:
        return ConnectionState(
            command_bound=self._connecting is not None,
            command_ready=self._command_ready,
            state_bound=self._state_transport is not None,
            sending=self._channel.sending,
        )

    @property
    def command_address(self) -> Optional[Tuple[str, int]]:
        return self._channel.local_address

    @property
    def state_address(self) -> Optional[Tuple[str, int]]:
        if self._state_transport is None:
            return None
        return self._state_transport.get_extra_info("sockname")[:2]

    # ---- 控制通道 ----

    async def connect(self, auto_command: bool = True) -> None:
        """
        幂等：只有第一次调用真正 bind（并按需握手）。
        已连接时直接返回；绑定进行中时等待同一次绑定，不会重复 bind。
        """
        self._check_open()
        if self._bind_error is not None:
            raise self._bind_error
        if self._connecting is not None:
            await asyncio.shield(self._connecting)
            return
        self._connecting = asyncio.ensure_future(self._bind_command())
        await asyncio.shield(self._connecting)
        if auto_command:
            await self.command()

    async def _bind_command(self) -> None:
        try:
            await self._channel.bind(self.config.command_local)
        except OSError as e:
            self._channel.close()
            self._log.error(f"bind_fail:{e}")
            self._bind_error = BindError(
                f"cannot bind command socket on {self.config.command_local[0]}:{self.config.command_local[1]}: {e}"
            )
            raise self._bind_error from e
        self._command_ready = True

    async def command(self) -> None:
        self._log.info("setting COMMAND mode...")
        status = await self.send(CMD_COMMAND)
        if status != STATUS_OK:
            raise UnexpectedResponseError(CMD_COMMAND, status)

    async def send(self, command: str) -> str:
        if self._channel.sending:
            self._log.warning(f"busy_reject:{command}")
            raise BusyError(command)
        if not self.is_connected:
            self._log.info("not connected, trying autoconnect...")
            # 本身就是握手命令时不再自动握手，避免递归
            await self.connect(auto_command=command != CMD_COMMAND)
        return await self._channel.send(command)

    # ---- 遥测通道 ----

    async def state(self, callback: StateCallback, parse: bool = True) -> TelemetryDispatcher:
        """
        订阅遥测：首次调用绑定状态端口，之后复用同一绑定。
        每次调用都启动一个新的 TelemetryDispatcher 并返回，可单独 stop()。

        注意：多个 dispatcher 共享同一个遥测队列，谁先取到谁消费，
        报文在回调之间的分配不确定；不支持多消费者，请只订阅一次。
        回调抛出的异常只记 error 日志，该帧丢弃，分发继续。
        """
        self._check_open()
        if self._state_bind is None:
            self._state_bind = asyncio.ensure_future(self._bind_state())
        await asyncio.shield(self._state_bind)

        dispatcher = TelemetryDispatcher(self._buffer, callback, parse=parse, log=self._log)
        if self._dispatchers:
            self._log.warning("state_multiple_consumers")
        self._dispatchers.append(dispatcher)
        dispatcher.start()
        return dispatcher

    async def _bind_state(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _StateProtocol(self._buffer, self._log), local_addr=self.config.state_local
            )
        except OSError as e:
            self._log.error(f"state_bind_fail:{e}")
            raise BindError(
                f"cannot bind state socket on {self.config.state_local[0]}:{self.config.state_local[1]}: {e}"
            ) from e
        self._state_transport = transport  # type: ignore[assignment]
        addr = self.state_address
        self._log.info(f"client listening on {addr[0]}:{addr[1]}...")

    # ---- 资源释放 ----

    def _check_open(self) -> None:
        if self._closed:
            raise TelloNodeError("session is closed, create a new TelloNode")

    async def close(self) -> None:
        """幂等；关闭后的会话不能再用。"""
        self._closed = True
        for d in self._dispatchers:
            await d.stop()
        self._dispatchers.clear()
        if self._state_transport is not None:
            self._state_transport.close()
            self._state_transport = None
        self._channel.close()
        self._command_ready = False
