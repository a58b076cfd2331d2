# src/tello_node/logs.py
from __future__ import annotations

import logging
from typing import Any, MutableMapping, Tuple


def get_logger(name: str) -> logging.Logger:
    """按模块名取 logger；首次获取时挂上 key=value 格式的控制台 handler。"""
    logger = logging.getLogger(name)
    if not logger.handlers:
        _h = logging.StreamHandler()
        _fmt = logging.Formatter(
            fmt=f"ts=%(asctime)s module={name} level=%(levelname)s event=%(message)s peer=%(peer)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        _h.setFormatter(_fmt)
        logger.addHandler(_h)
        logger.setLevel(logging.INFO)
    return logger


class SessionLogger(logging.LoggerAdapter):
    """
    会话级日志：
      - 自动补 peer 字段（未显式给出时用会话默认值）
      - silent=True 时整体静默，不改动全局 logger 状态
    """

    def __init__(self, logger: logging.Logger, peer: Tuple[str, int] | str, silent: bool = False) -> None:
        if isinstance(peer, tuple):
            peer = f"{peer[0]}:{peer[1]}"
        super().__init__(logger, {"peer": peer})
        self.silent = silent

    def isEnabledFor(self, level: int) -> bool:
        if self.silent:
            return False
        return self.logger.isEnabledFor(level)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs
