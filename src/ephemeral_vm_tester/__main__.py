"""Module entry point for `python -m ephemeral_vm_tester`."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
