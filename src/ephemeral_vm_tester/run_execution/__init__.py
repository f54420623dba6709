"""Run execution domain exports."""

from .instance_lease import InstanceLease
from .instance_naming import generate_instance_name, resolve_instance_name
from .readiness_polling import wait_for_ssh
from .run_contracts import RunContext, RunResult, TestInvocation
from .signal_scopes import signals_ignored, termination_signals_raised
from .vm_test_run_use_case import execute_target, run_vm_test, stage_paths

__all__ = [
    "TestInvocation",
    "RunResult",
    "RunContext",
    "InstanceLease",
    "generate_instance_name",
    "resolve_instance_name",
    "wait_for_ssh",
    "signals_ignored",
    "termination_signals_raised",
    "execute_target",
    "run_vm_test",
    "stage_paths",
]
