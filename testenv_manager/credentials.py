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

"""Secrets the controller reads at runtime."""

from __future__ import annotations

from pathlib import Path

from rich.panel import Panel

from testenv_manager import console
from testenv_manager.constants import (
    AWS_SECRET_NAME,
    REL_AWS_SECRET_MANIFEST,
    SNOWFLAKE_SECRET_KEY,
    SNOWFLAKE_SECRET_NAME,
)
from testenv_manager.errors import MissingInputError
from testenv_manager.utils import CommandRunner, quote


class CredentialProvisioner:
    """Create the Snowflake private-key secret and the AWS credential secret.

    Secrets are created once per environment. Changing them means tearing the
    environment down and setting it up again.
    """

    def __init__(self, runner: CommandRunner, namespace: str) -> None:
        self.runner = runner
        self.namespace = namespace

    def provision(self, private_key_file: Path | None) -> None:
        """Create both credential secrets.

        Args:
            private_key_file: Snowflake private key (SNOWFLAKE_SECRET_FILE).

        Raises:
            MissingInputError: If *private_key_file* is unset.
            CommandFailedError: If kubectl fails.
        """
        if not private_key_file:
            raise MissingInputError("SNOWFLAKE_SECRET_FILE environment variable is required for snowflake secret")

        console.print(Panel.fit("Creating credentials", style="bold blue"))
        self.runner.run(
            f"kubectl create secret generic {SNOWFLAKE_SECRET_NAME} -n {quote(self.namespace)} "
            f"--from-file={SNOWFLAKE_SECRET_KEY}={quote(private_key_file)}"
        ).check()
        console.print(f"[green]  \u2713 {SNOWFLAKE_SECRET_NAME}[/green]")

        self.runner.run(f"kubectl apply -n {quote(self.namespace)} -f {REL_AWS_SECRET_MANIFEST}").check()
        console.print(f"[green]  \u2713 {AWS_SECRET_NAME}[/green]")

    def cleanup_commands(self) -> list[str]:
        return [
            f"kubectl delete secret {name} -n {quote(self.namespace)} --ignore-not-found=true"
            for name in (SNOWFLAKE_SECRET_NAME, AWS_SECRET_NAME)
        ]
