# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Shell command execution and tool checks."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import sh

from testenv_manager import logger
from testenv_manager.errors import CommandFailedError, MissingInputError

# Exit code reported when the shell itself cannot be started.
EXIT_NOT_STARTED = 127


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command.

    Attributes:
        command: The command line that was run.
        exit_code: Process exit status (negative when killed by a signal).
        output: Combined stdout and stderr.
    """

    command: str
    exit_code: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def check(self) -> CommandResult:
        """Return self, or raise if the command failed.

        Raises:
            CommandFailedError: If the exit code is non-zero.
        """
        if not self.ok:
            raise CommandFailedError(self.command, self.exit_code, self.output)
        return self


class CommandRunner(Protocol):
    """Runs a single command line synchronously."""

    def run(self, command: str) -> CommandResult: ...


class ShellCommandRunner:
    """Run command lines through ``bash -c`` with combined output.

    Command lines may use pipes and quoting, so every call goes through a
    shell. Calls share no state besides the working directory and the
    environment overlay (KUBECONFIG pins kind, kubectl and make to one cluster).
    """

    def __init__(self, cwd: Path | None = None, env: dict[str, str] | None = None) -> None:
        self.cwd = cwd
        self.env = env

    def run(self, command: str) -> CommandResult:
        logger.debug("$ %s", command)
        kwargs = {"_err_to_out": True, "_tty_out": False}
        if self.cwd is not None:
            kwargs["_cwd"] = str(self.cwd)
        if self.env:
            kwargs["_env"] = {**os.environ, **self.env}
        try:
            output = sh.bash("-c", command, **kwargs)
        except sh.ErrorReturnCode as e:
            return CommandResult(command, e.exit_code, e.stdout.decode(errors="replace"))
        except (sh.CommandNotFound, OSError) as e:
            return CommandResult(command, EXIT_NOT_STARTED, str(e))
        return CommandResult(command, 0, str(output))


def quote(value: str | Path) -> str:
    """Shell-quote a single argument for a command line."""
    return shlex.quote(str(value))


def require_command(runner: CommandRunner, cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        runner: Runner used to probe the PATH.
        cmd: Name of the CLI command to check.

    Raises:
        MissingInputError: If the command is not found.
    """
    if not runner.run(f"command -v {quote(cmd)}").ok:
        raise MissingInputError(f"Required command '{cmd}' not found. Please install it first.")
