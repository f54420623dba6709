"""Remote access exports."""

from .remote_commands import (
    build_environment_prefix,
    build_inline_command,
    build_script_command,
    home_path,
    parse_environment_assignment,
)
from .ssh_transport import SSHTransport, TransportUnavailableError
from .transport_contracts import GuestEndpoint, RemoteTransport

__all__ = [
    "GuestEndpoint",
    "RemoteTransport",
    "SSHTransport",
    "TransportUnavailableError",
    "build_environment_prefix",
    "build_inline_command",
    "build_script_command",
    "home_path",
    "parse_environment_assignment",
]
