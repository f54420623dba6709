"""Command line interface entry point."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from ephemeral_vm_tester.configuration import (
    DEFAULT_CONFIG_FILENAME,
    ConfigurationError,
    RunnerSettings,
    load_settings,
    write_placeholder_configuration,
)
from ephemeral_vm_tester.errors import HarnessError, RemoteExecutionError, RunInterruptedError
from ephemeral_vm_tester.image_store import TartImageStore
from ephemeral_vm_tester.remote_access import SSHTransport, parse_environment_assignment
from ephemeral_vm_tester.run_execution import TestInvocation, run_vm_test
from ephemeral_vm_tester.run_reporting import configure_progress_logging

MAX_PROPAGATED_EXIT_CODE = 124
HARNESS_FAILURE_EXIT_CODE = 125
SIGNAL_EXIT_CODE_BASE = 128
INTERRUPTED_EXIT_CODE = SIGNAL_EXIT_CODE_BASE + 2


class CliError(Exception):
    """Custom CLI error carrying the process exit code."""

    def __init__(self, message: str, exit_code: int = HARNESS_FAILURE_EXIT_CODE) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def exit_code_for_status(exit_status: int) -> int:
    """Map a remote exit status into the range reserved for test outcomes.

    Statuses 125 and above are reserved for harness failures and signals, so
    remote statuses from 124 upwards all collapse to 124. A negative status
    means the local ssh client was killed by a signal and the test status is
    unknown, which is a harness failure.
    """
    if exit_status == 0:
        return 0
    if exit_status < 0:
        return HARNESS_FAILURE_EXIT_CODE
    return min(exit_status, MAX_PROPAGATED_EXIT_CODE)


def _load_runner_settings(config_path: str | None) -> RunnerSettings:
    try:
        return load_settings(config_path)
    except ConfigurationError as exc:
        raise CliError(str(exc), exit_code=HARNESS_FAILURE_EXIT_CODE) from exc


def _parse_environment(assignments: tuple[str, ...]) -> dict[str, str]:
    environment: dict[str, str] = {}
    for raw in assignments:
        try:
            name, value = parse_environment_assignment(raw)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="'-e' / '--env'") from exc
        environment[name] = value
    return environment


def _build_image_store(settings: RunnerSettings) -> TartImageStore:
    return TartImageStore(settings.image_store_command)


def _build_transport(settings: RunnerSettings) -> SSHTransport:
    return SSHTransport(port=settings.ssh_port)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="ephemeral-vm-tester")
def cli() -> None:
    """Run tests inside ephemeral clones of virtual-machine base images."""


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML runner configuration template to write",
)
def generate_config(output_path: str) -> None:
    """Generate a YAML runner configuration with guidance comments."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="images")
@click.option(
    "--config",
    "config_path",
    required=False,
    type=click.Path(path_type=str),
    help="Path to a YAML runner configuration file",
)
def list_images(config_path: str | None) -> None:
    """List the base images registered in the image store."""
    settings = _load_runner_settings(config_path)
    image_store = _build_image_store(settings)
    try:
        image_store.ensure_available()
        images = image_store.list_images()
    except HarnessError as exc:
        raise CliError(str(exc), exit_code=HARNESS_FAILURE_EXIT_CODE) from exc
    for image in images:
        details = " ".join(part for part in (image.source, image.state) if part)
        click.echo(f"{image.name}\t{details}".rstrip())


@cli.command(name="run")
@click.argument("base_image")
@click.argument("test_target")
@click.argument("test_args", nargs=-1, type=click.UNPROCESSED)
@click.option("-u", "--user", "remote_user", help="SSH user inside the guest [env: VM_USER]")
@click.option(
    "-t",
    "--timeout",
    "timeout_seconds",
    type=click.IntRange(min=1),
    help="Seconds to wait for SSH after boot [env: SSH_TIMEOUT]",
)
@click.option(
    "-p",
    "--port",
    "ssh_port",
    type=click.IntRange(min=1, max=65535),
    help="SSH port of the guest [env: VM_SSH_PORT]",
)
@click.option("-k", "--keep", is_flag=True, default=False, help="Keep the VM after the run")
@click.option("-n", "--name", "instance_name", help="Custom name for the test VM")
@click.option(
    "-c",
    "--copy",
    "copy_paths",
    multiple=True,
    type=click.Path(path_type=Path),
    help="Copy a file or directory to the guest home directory (repeatable)",
)
@click.option(
    "-e",
    "--env",
    "env_assignments",
    multiple=True,
    help="Export KEY=VALUE before running the test (repeatable)",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable verbose output")
@click.option(
    "--config",
    "config_path",
    required=False,
    type=click.Path(path_type=str),
    help="Path to a YAML runner configuration file",
)
def run_test(  # pylint: disable=too-many-arguments,too-many-locals
    base_image: str,
    test_target: str,
    test_args: tuple[str, ...],
    remote_user: str | None,
    timeout_seconds: int | None,
    ssh_port: int | None,
    keep: bool,
    instance_name: str | None,
    copy_paths: tuple[Path, ...],
    env_assignments: tuple[str, ...],
    verbose: bool,
    config_path: str | None,
) -> None:
    """Run TEST_TARGET (a local script or inline command) in a clone of BASE_IMAGE.

    Arguments after `--` are passed to the test. Exit status is the test's own
    (capped at 124), 125 when the harness fails, 128+N when interrupted by signal N.
    """
    configure_progress_logging(verbose=verbose)
    environment = _parse_environment(env_assignments)
    settings = _load_runner_settings(config_path).with_overrides(
        remote_user=remote_user,
        ssh_port=ssh_port,
        connect_timeout_seconds=timeout_seconds,
    )
    invocation = TestInvocation(
        target=test_target,
        arguments=tuple(test_args),
        environment=environment,
        stage_paths=tuple(copy_paths),
        instance_name=instance_name,
        retain_instance=keep,
        remote_user=settings.remote_user,
        connect_timeout_seconds=settings.connect_timeout_seconds,
    )

    click.echo("=" * 44, err=True)
    click.echo("  Ephemeral VM Test Runner", err=True)
    click.echo("=" * 44, err=True)
    try:
        result = run_vm_test(
            base_image,
            invocation,
            image_store=_build_image_store(settings),
            transport=_build_transport(settings),
            settings=settings,
        )
    except RunInterruptedError as exc:
        raise CliError(str(exc), exit_code=SIGNAL_EXIT_CODE_BASE + exc.signum) from exc
    except HarnessError as exc:
        raise CliError(f"Harness failure: {exc}", exit_code=HARNESS_FAILURE_EXIT_CODE) from exc

    try:
        result.raise_for_status()
    except RemoteExecutionError as exc:
        raise CliError(
            f"FAILED: {exc}", exit_code=exit_code_for_status(exc.exit_status)
        ) from exc
    click.echo(f"PASSED: tests succeeded on '{result.instance_name}'", err=True)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return exc.exit_code
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return INTERRUPTED_EXIT_CODE
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
