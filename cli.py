#!/usr/bin/env python3
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

"""
cli.py - e2e environment manager for the unstructured-data controller.

Subcommands:
    env run       Set up an environment, run a test command, tear down
    env up        Set up an environment and keep it until Ctrl+C
    env teardown  Clean up an existing environment
    config show   Print the resolved configuration

Environment Variables:
    IMG                    Controller image (required)
    SNOWFLAKE_SECRET_FILE  Snowflake private key file (required)
    ACCOUNT, USER, ROLE, WAREHOUSE
                           Snowflake identity overrides
    SKIP_CLUSTER_SETUP, SKIP_CLUSTER_CLEANUP, SKIP_TEST_CLEANUP,
    SKIP_LOCALSTACK_SETUP, SKIP_DOCLING_SETUP
                           Opt out of individual steps
    PROJECT_DIR            Controller project root (default: current directory)

Examples:
    # Run the Go e2e suite against a fresh kind cluster
    IMG=quay.io/me/controller:dev SNOWFLAKE_SECRET_FILE=~/key.p8 \\
        ./cli.py env run -- go test -tags=e2e ./test/e2e/...

    # Reuse the current cluster and keep everything afterwards
    SKIP_CLUSTER_SETUP=true SKIP_TEST_CLEANUP=true ./cli.py env up

For detailed usage information, run: ./cli.py --help
"""

from __future__ import annotations

import logging
import sys

import typer

from testenv_manager import console
from testenv_manager.commands import config_cmd, env_cmd

app = typer.Typer(
    help="e2e environment manager for the unstructured-data controller.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(env_cmd.app, name="env")
app.add_typer(config_cmd.app, name="config")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
