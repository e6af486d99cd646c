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

"""Exception hierarchy for environment setup and teardown."""

from __future__ import annotations

from dataclasses import dataclass


class SandboxError(Exception):
    """Base class for all test-environment failures."""


class MissingInputError(SandboxError):
    """A required environment variable or tool is absent."""


class CommandFailedError(SandboxError):
    """An external command exited non-zero or could not be started."""

    def __init__(self, command: str, exit_code: int, output: str = "") -> None:
        self.command = command
        self.exit_code = exit_code
        self.output = output
        message = f"command failed (exit {exit_code}): {command}"
        if output.strip():
            message = f"{message}: {output.strip()[:500]}"
        super().__init__(message)


class DeadlineExceededError(SandboxError):
    """A readiness wait ran out of time."""


class ClusterApiError(SandboxError):
    """The Kubernetes API rejected a request."""


class ProcessTerminationError(SandboxError):
    """A tracked background process could not be terminated."""


@dataclass(frozen=True)
class CleanupFailure:
    """A single failed teardown action.

    Attributes:
        step: Name of the cleanup step that produced the failure.
        error: The failure itself.
    """

    step: str
    error: Exception

    def __str__(self) -> str:
        return f"[{self.step}] {self.error}"


class CleanupError(SandboxError):
    """Every failure collected during one teardown attempt, in execution order."""

    def __init__(self, failures: list[CleanupFailure]) -> None:
        self.failures = list(failures)
        lines = "\n".join(f"  {idx}. {failure}" for idx, failure in enumerate(self.failures, start=1))
        super().__init__(f"failed to cleanup test environment ({len(self.failures)} failures):\n{lines}")
