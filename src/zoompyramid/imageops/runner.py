"""Execution of external image tool commands."""

from __future__ import annotations

import subprocess
from typing import List, Sequence

from zoompyramid.errors import OperationError
from zoompyramid.logging import get_logger

LOGGER = get_logger(__name__)


class CommandRunner:
    """Execute external commands and propagate failures with context."""

    def run(self, command: Sequence[str], *, description: str) -> None:
        self.capture(command, description=description)

    def capture(self, command: Sequence[str], *, description: str) -> str:
        """Run ``command`` and return its stdout."""

        args: List[str] = [str(part) for part in command]
        LOGGER.info("image step", extra={"description": description, "command": " ".join(args)})
        try:
            proc = subprocess.run(args, check=True, text=True, capture_output=True)
        except FileNotFoundError as exc:
            raise OperationError(f"Executable not found: {args[0]}") from exc
        except subprocess.CalledProcessError as exc:
            msg = f"Command failed: {' '.join(args)}"
            if exc.stdout:
                msg += f"\n--- stdout ---\n{exc.stdout}"
            if exc.stderr:
                msg += f"\n--- stderr ---\n{exc.stderr}"
            raise OperationError(msg) from exc
        if proc.stderr:
            LOGGER.debug(proc.stderr.strip())
        return proc.stdout or ""
