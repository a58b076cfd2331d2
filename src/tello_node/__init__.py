from tello_node.config import (
    CMD_COMMAND,
    DEFAULT_COMMAND_PORT,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_SERVER_ADDRESS,
    DEFAULT_STATE_PORT,
    DEFAULT_TELLO_ADDRESS,
    STATUS_OK,
    TelloNodeConfig,
    default_config,
)
from tello_node.drivers.tello.session import ConnectionState, TelloNode
from tello_node.drivers.tello.state_parser import TelloState, parse_state
from tello_node.errors import (
    BindError,
    BusyError,
    CommandTimeoutError,
    TelloNodeError,
    TransportError,
    UnexpectedResponseError,
)

__all__ = [
    "CMD_COMMAND",
    "DEFAULT_COMMAND_PORT",
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_SERVER_ADDRESS",
    "DEFAULT_STATE_PORT",
    "DEFAULT_TELLO_ADDRESS",
    "STATUS_OK",
    "BindError",
    "BusyError",
    "CommandTimeoutError",
    "ConnectionState",
    "TelloNode",
    "TelloNodeConfig",
    "TelloNodeError",
    "TelloState",
    "TransportError",
    "UnexpectedResponseError",
    "default_config",
    "parse_state",
]
