"""Configuration scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILENAME = "vm-tester.yaml"

_CONFIG_SCAFFOLD_TEMPLATE = """# Runner configuration for ephemeral-vm-tester.
# Every key is optional; remove the ones you do not need.
# VM_USER, SSH_TIMEOUT and VM_SSH_PORT override these values,
# and command-line flags override the environment.

runner:
  # Account used for ssh/scp inside the guest.
  remote_user: "admin"
  ssh_port: 22
  # Seconds to wait for the guest to accept SSH connections after boot.
  connect_timeout_seconds: 120
  # Seconds between readiness attempts.
  poll_interval_seconds: 2
  # Per-attempt SSH connect timeout during readiness polling.
  handshake_timeout_seconds: 5
  # Seconds to wait for the VM process to exit after it is asked to stop.
  stop_grace_seconds: 30
  # Image store executable (must provide list/clone/run/ip/stop/delete).
  image_store_command: "tart"
"""


def build_placeholder_configuration() -> str:
    """Build a YAML runner configuration template with inline guidance."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str) -> Path:
    """Write the runner configuration template to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Runner configuration file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
