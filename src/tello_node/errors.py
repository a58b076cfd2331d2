# src/tello_node/errors.py
"""驱动层异常：全部直接抛给调用方，本层不做重试/重连。"""

from __future__ import annotations

from typing import Tuple


class TelloNodeError(RuntimeError):
    """所有驱动异常的基类。"""


class BindError(TelloNodeError):
    """本地端口绑定失败；会话不可再用，需重新创建 TelloNode。"""


class BusyError(TelloNodeError):
    """已有一条命令在途。"""

    def __init__(self, command: str) -> None:
        super().__init__(f'already sending, rejected command "{command}"')
        self.command = command


class CommandTimeoutError(TelloNodeError):
    def __init__(self, command: str, address: Tuple[str, int]) -> None:
        super().__init__(
            f'timeout reached while sending command "{command}" to {address[0]}:{address[1]}'
        )
        self.command = command
        self.address = address


class TransportError(TelloNodeError):
    """sendto 失败（网络不可达等），原始 OSError 挂在 __cause__ 上。"""


class UnexpectedResponseError(TelloNodeError):
    def __init__(self, command: str, response: str) -> None:
        super().__init__(f"{command.upper()} responded with unexpected response:\n{response}")
        self.command = command
        self.response = response
