# src/tello_node/middleware/module/telemetry_buffer.py
"""
TelemetryBuffer — 遥测原始报文 FIFO
- 写端：状态 socket 的 datagram_received，逐帧 push 到队尾
- 读端：TelemetryDispatcher，await get() 等到有数据再 drain() 一次取完
- 不过滤、无背压、不限长（不消费就一直涨）

同一个 buffer 被多个 dispatcher 消费时，谁先 drain 谁拿走，
报文归属不确定；不支持这种用法。
"""

from __future__ import annotations

import asyncio
from typing import List


class TelemetryBuffer:
    def __init__(self) -> None:
        self._q: asyncio.Queue[bytes] = asyncio.Queue()

    def __len__(self) -> int:
        return self._q.qsize()

    def push(self, data: bytes) -> None:
        self._q.put_nowait(data)

    async def get(self) -> bytes:
        """等待并取出最早的一帧。"""
        return await self._q.get()

    def drain(self) -> List[bytes]:
        """非阻塞取出当前全部报文（最早的在前）。"""
        items: List[bytes] = []
        try:
            while True:
                items.append(self._q.get_nowait())
        except asyncio.QueueEmpty:
            pass
        return items
