# src/tello_node/middleware/module/telemetry_dispatcher.py
"""
TelemetryDispatcher — 把 TelemetryBuffer 里的报文按到达顺序交给回调

后台任务循环：
  1) await buffer.get()，没有数据就挂起（不空转）
  2) 连同当前队列里剩下的报文一次性取完
  3) 逐帧解码（parse=True 时转成 TelloState）并调用回调；回调可同步可异步
回调抛异常只记日志，循环继续。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from tello_node.drivers.tello.state_parser import TelloState, parse_state
from tello_node.logs import SessionLogger, get_logger
from .telemetry_buffer import TelemetryBuffer

logger = get_logger("middleware.telemetry")

StateCallback = Callable[[Union[str, TelloState]], Union[Awaitable[Any], Any]]


class TelemetryDispatcher:
    def __init__(
        self,
        buffer: TelemetryBuffer,
        callback: StateCallback,
        parse: bool = True,
        log: Optional[logging.LoggerAdapter] = None,
    ) -> None:
        self._buffer = buffer
        self._callback = callback
        self._parse = parse
        self._log = log or SessionLogger(logger, "-")
        self._task: Optional[asyncio.Task] = None
        self.delivered = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="TelemetryDispatcher")
            self._log.info("telemetry_dispatcher_started")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            self._log.info("telemetry_dispatcher_stopped")

    async def _run(self) -> None:
        while True:
            first = await self._buffer.get()
            for raw in [first, *self._buffer.drain()]:
                await self._deliver(raw)

    async def _deliver(self, raw: bytes) -> None:
        text = raw.decode("utf-8", errors="ignore")
        item: Union[str, TelloState] = parse_state(text) if self._parse else text
        try:
            r = self._callback(item)
            if asyncio.iscoroutine(r):
                await r
        except Exception as e:
            self._log.error(f"state_cb_exception:{e}")
        self.delivered += 1
