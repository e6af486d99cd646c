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

"""Detached helper processes (log followers, port-forwards) and their teardown."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from testenv_manager import logger
from testenv_manager.constants import PROCESS_KILL_WAIT_SECONDS
from testenv_manager.errors import CommandFailedError, ProcessTerminationError
from testenv_manager.utils import EXIT_NOT_STARTED


@dataclass
class TrackedProcess:
    """A background process owned by the test environment.

    Attributes:
        process: Handle of the running process.
        description: What the process is for, used in logs and errors.
        log_path: File receiving the process output, if any.
    """

    process: subprocess.Popen
    description: str
    log_path: Path | None = None


class ProcessTracker:
    """Ordered registry of background processes, terminated together at teardown.

    Attributes:
        env: Variables added to the parent environment of every started process.
    """

    def __init__(
        self,
        spawn: Callable[..., subprocess.Popen] = subprocess.Popen,
        env: dict[str, str] | None = None,
    ) -> None:
        self._spawn = spawn
        self.env = env
        self._processes: list[TrackedProcess] = []

    def __len__(self) -> int:
        return len(self._processes)

    def __iter__(self) -> Iterator[TrackedProcess]:
        return iter(list(self._processes))

    def track(self, process: subprocess.Popen, description: str, log_path: Path | None = None) -> TrackedProcess:
        """Record an already-started process."""
        tracked = TrackedProcess(process, description, log_path)
        self._processes.append(tracked)
        logger.debug("tracking pid %s (%s)", getattr(process, "pid", "?"), description)
        return tracked

    def start(
        self,
        args: list[str],
        description: str,
        log_path: Path | None = None,
        cwd: Path | None = None,
    ) -> TrackedProcess:
        """Start a detached process and track it.

        Args:
            args: Program and arguments.
            description: What the process is for.
            log_path: Write combined output here; inherit the parent's streams when None.
            cwd: Working directory for the process.

        Returns:
            The tracked process.

        Raises:
            CommandFailedError: If the process cannot be started.
        """
        command = " ".join(args)
        env = {**os.environ, **self.env} if self.env else None
        try:
            if log_path is not None:
                # The child keeps its own descriptor; the parent's copy is closed on exit.
                with open(log_path, "w") as log_file:
                    process = self._spawn(
                        args, stdout=log_file, stderr=subprocess.STDOUT,
                        cwd=cwd, env=env, start_new_session=True,
                    )
            else:
                process = self._spawn(args, cwd=cwd, env=env, start_new_session=True)
        except OSError as e:
            raise CommandFailedError(command, EXIT_NOT_STARTED, str(e)) from e
        return self.track(process, description, log_path)

    def kill_all(self) -> list[ProcessTerminationError]:
        """Terminate every tracked process in insertion order.

        The tracker is drained first, so a second call is a no-op. Processes that
        already exited on their own are not errors.

        Returns:
            One error per process that could not be terminated.
        """
        processes, self._processes = self._processes, []
        errors: list[ProcessTerminationError] = []
        for tracked in processes:
            process = tracked.process
            if process.poll() is not None:
                logger.debug("%s already exited with %s", tracked.description, process.returncode)
                continue
            try:
                process.kill()
                process.wait(timeout=PROCESS_KILL_WAIT_SECONDS)
            except ProcessLookupError:
                continue
            except (OSError, subprocess.TimeoutExpired) as e:
                errors.append(ProcessTerminationError(
                    f"failed to terminate {tracked.description} (pid {process.pid}): {e}"
                ))
                continue
            logger.debug("terminated %s", tracked.description)
        return errors
