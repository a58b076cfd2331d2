# ---------------------------------------------------------------------
# Tello 控制通道（UDP 8889）：asyncio.create_datagram_endpoint 版本
# ---------------------------------------------------------------------
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

from tello_node.errors import BusyError, CommandTimeoutError, TransportError
from tello_node.logs import SessionLogger, get_logger

logger = get_logger("driver.command")


class _CommandProtocol(asyncio.DatagramProtocol):
    """收包协议：把应答交给 CommandChannel 结算当前在途事务。"""
    def __init__(self, channel: "CommandChannel") -> None:
        self.channel = channel
        self.transport: Optional[asyncio.DatagramTransport] = None

    def connection_made(self, transport: asyncio.DatagramTransport) -> None:  # type: ignore[override]
        self.transport = transport

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        # 应答可能是 'ok' / 'error' / 数字（如电量）
        self.channel._on_reply(data.decode("utf-8", errors="ignore").strip(), addr)

    def error_received(self, exc: Exception) -> None:
        self.channel._on_error(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc:
            self.channel._log.error(f"udp_lost:{exc}")


class CommandChannel:
    """
    控制通道：一次只允许一条命令在途
      send(): 在途时立即抛 BusyError（不排队、不等待）
              否则发送 → 定时器与应答赛跑，三种结局取先到者：
                1) 收到任意报文 → 取消定时器，返回 strip 后的文本
                2) 定时器先到 → CommandTimeoutError
                3) sendto 失败（asyncio 回调 error_received）→ TransportError
    协议没有事务号：上一条超时命令的迟到应答会被算到当前在途命令头上。
    """
    def __init__(
        self,
        remote: Tuple[str, int],
        timeout: float,
        log: Optional[logging.LoggerAdapter] = None,
    ) -> None:
        self._remote = remote
        self._timeout = timeout  # 秒
        self._log = log or SessionLogger(logger, remote)
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._pending: Optional[asyncio.Future] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._command = ""
        self.sending = False

    @property
    def local_address(self) -> Optional[Tuple[str, int]]:
        if self._transport is None:
            return None
        return self._transport.get_extra_info("sockname")[:2]

    async def bind(self, local_addr: Tuple[str, int]) -> None:
        """绑定本地地址并启动收包协议；失败时 OSError 原样抛出。"""
        if self._transport is not None:
            return
        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            lambda: _CommandProtocol(self), local_addr=local_addr
        )
        self._transport = transport  # type: ignore[assignment]
        addr = self.local_address
        self._log.info(f"server connected on {addr[0]}:{addr[1]}")

    async def send(self, command: str) -> str:
        if self.sending:
            self._log.warning(f"busy_reject:{command}")
            raise BusyError(command)
        if self._transport is None:
            raise TransportError("command socket is not bound")

        loop = asyncio.get_running_loop()
        fut: asyncio.Future = loop.create_future()
        self.sending = True
        self._command = command
        self._pending = fut
        self._log.info(f'sending "{command}" to {self._remote[0]}:{self._remote[1]}...')

        # 先挂定时器：sendto 失败时 asyncio 不抛异常，而是在 sendto 内部
        # 回调 error_received，由 _on_error -> _settle 一并取消定时器
        self._timer = loop.call_later(self._timeout, self._on_timeout, fut)
        self._transport.sendto(command.encode("utf-8"), self._remote)
        return await fut

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self._transport = None
            self._log.info("connection closed!")

    # ---- 三种结局 ----

    def _settle(self) -> Optional[asyncio.Future]:
        """清理在途状态，返回被结算的 future（无在途时 None）。"""
        fut = self._pending
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None
        self.sending = False
        return fut

    def _on_reply(self, text: str, addr: Tuple[str, int]) -> None:
        if self._pending is None or self._pending.done():
            self._log.warning(f"reply_unsolicited:{text!r}", extra={"peer": f"{addr[0]}:{addr[1]}"})
            return
        fut = self._settle()
        self._log.info(f"recv:{text!r}")
        fut.set_result(text)

    def _on_timeout(self, fut: asyncio.Future) -> None:
        if fut is not self._pending:
            return
        self._settle()
        self._log.error(f"ack_timeout:{self._command}")
        if not fut.done():
            fut.set_exception(CommandTimeoutError(self._command, self._remote))

    def _on_error(self, exc: Exception) -> None:
        self._log.error(f"udp_error:{exc}")
        if self._pending is None or self._pending.done():
            return
        fut = self._settle()
        err = TransportError(f'failed to send "{self._command}": {exc}')
        err.__cause__ = exc
        fut.set_exception(err)
