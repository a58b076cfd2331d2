# src/tello_node/drivers/tello/state_parser.py
"""
遥测文本解析：'key:value;key:value;...;' → 稀疏字典
- 只保留本帧出现且格式正确的字段，缺失字段不补 0
- 坏段（无 ':'、空 key/value、非数字）逐段跳过，不影响其余字段
- 重复 key 以后出现者为准
"""

from __future__ import annotations

from typing import Dict, TypedDict

STATE_FIELDS = (
    "mid", "x", "y", "z",
    "pitch", "roll", "yaw",
    "vgx", "vgy", "vgz",
    "templ", "temph",
    "tof", "h", "bat", "baro", "time",
    "agx", "agy", "agz",
)


class TelloState(TypedDict, total=False):
    mid: float
    x: float
    y: float
    z: float
    pitch: float
    roll: float
    yaw: float
    vgx: float
    vgy: float
    vgz: float
    templ: float
    temph: float
    tof: float
    h: float
    bat: float
    baro: float
    time: float
    agx: float
    agy: float
    agz: float


def parse_state(text: str) -> TelloState:
    state: Dict[str, float] = {}
    for segment in text.strip().split(";"):
        key, sep, value = segment.partition(":")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            continue
        try:
            state[key] = float(value)
        except ValueError:
            continue
    return state  # type: ignore[return-value]
