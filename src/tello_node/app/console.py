# src/tello_node/app/console.py
"""
DroneConsole — 给同步 UI（Streamlit 等）用的桥接层
- 后台守护线程里跑一个独立事件循环，TelloNode 只在这个循环里使用
- send_cmd() 阻塞等待结果，并把“发送/回应”写进 log
- start_telemetry() 订阅遥测，把每帧合并进 latest（保留最近一次已知值）
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Coroutine, Dict, List, Optional

from tello_node.config import TelloNodeConfig
from tello_node.drivers.tello.session import TelloNode
from tello_node.drivers.tello.state_parser import TelloState
from tello_node.errors import TelloNodeError


class DroneConsole:
    def __init__(self, config: Optional[TelloNodeConfig] = None, max_log: int = 200) -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, name="DroneConsoleLoop", daemon=True)
        self._thread.start()
        self._max_log = max_log
        self._lock = threading.Lock()
        self.node = TelloNode(config)
        self.log: List[str] = []
        self.latest: Dict[str, float] = {}
        self.frames = 0
        self._telemetry_started = False

    def _call(self, coro: Coroutine[Any, Any, Any], timeout: Optional[float] = None) -> Any:
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout)

    def _append(self, msg: str) -> str:
        with self._lock:
            self.log.append(msg)
            del self.log[:-self._max_log]
        return msg

    def send_cmd(self, cmd: str) -> str:
        try:
            res = self._call(self.node.send(cmd))
        except TelloNodeError as e:
            return self._append(f"发送: {cmd} → 失败: {e}")
        return self._append(f"发送: {cmd} → 回应: {res}")

    def takeoff(self) -> str: return self.send_cmd("takeoff")
    def land(self) -> str: return self.send_cmd("land")
    def forward(self, cm: int = 30) -> str: return self.send_cmd(f"forward {cm}")
    def back(self, cm: int = 30) -> str: return self.send_cmd(f"back {cm}")
    def left(self, cm: int = 30) -> str: return self.send_cmd(f"left {cm}")
    def right(self, cm: int = 30) -> str: return self.send_cmd(f"right {cm}")
    def battery(self) -> str: return self.send_cmd("battery?")

    def _on_state(self, state: TelloState) -> None:
        with self._lock:
            self.latest.update(state)
            self.frames += 1

    def start_telemetry(self) -> None:
        if self._telemetry_started:
            return
        self._call(self.node.state(self._on_state, parse=True))
        self._telemetry_started = True

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            return dict(self.latest)

    def close(self) -> None:
        if self._loop.is_closed():
            return
        self._call(self.node.close())
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()
