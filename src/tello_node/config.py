# src/tello_node/config.py
"""
会话配置（创建 TelloNode 后不可变）

默认值与 Tello SDK 文档一致：
  控制端口 8889（命令/应答），状态端口 8890（遥测推送），
  无人机地址 192.168.10.1，本地绑定 0.0.0.0，命令超时 3000ms
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_TELLO_ADDRESS = "192.168.10.1"
DEFAULT_COMMAND_PORT = 8889
DEFAULT_STATE_PORT = 8890
DEFAULT_SERVER_ADDRESS = "0.0.0.0"
DEFAULT_COMMAND_TIMEOUT = 3000  # ms

STATUS_OK = "ok"
CMD_COMMAND = "command"


@dataclass(frozen=True)
class TelloNodeConfig:
    tello: str = DEFAULT_TELLO_ADDRESS
    command: int = DEFAULT_COMMAND_PORT
    state: int = DEFAULT_STATE_PORT
    server: str = DEFAULT_SERVER_ADDRESS
    timeout: int = DEFAULT_COMMAND_TIMEOUT
    silent: bool = False
    # 命令 socket 的本地端口；None 表示与 command 相同（Tello 会回包到发送端口）
    command_bind_port: Optional[int] = None

    @property
    def remote(self) -> Tuple[str, int]:
        return (self.tello, self.command)

    @property
    def command_local(self) -> Tuple[str, int]:
        port = self.command if self.command_bind_port is None else self.command_bind_port
        return (self.server, port)

    @property
    def state_local(self) -> Tuple[str, int]:
        return (self.server, self.state)

    @property
    def timeout_s(self) -> float:
        return self.timeout / 1000.0


def default_config(silent: bool = False) -> TelloNodeConfig:
    return TelloNodeConfig(silent=silent)
