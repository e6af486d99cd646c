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

from pathlib import Path

import pytest

from testenv_manager.errors import CommandFailedError, MissingInputError
from testenv_manager.utils import EXIT_NOT_STARTED, CommandResult, ShellCommandRunner, quote, require_command


def test_runner_returns_output():
    result = ShellCommandRunner().run("echo hello")
    assert result.ok
    assert result.output.strip() == "hello"


def test_runner_combines_stderr_and_keeps_exit_code():
    result = ShellCommandRunner().run("echo oops >&2; exit 3")
    assert not result.ok
    assert result.exit_code == 3
    assert "oops" in result.output
    with pytest.raises(CommandFailedError) as exc_info:
        result.check()
    assert exc_info.value.exit_code == 3
    assert "oops" in str(exc_info.value)


def test_runner_uses_working_directory(tmp_path):
    result = ShellCommandRunner(cwd=tmp_path).run("pwd")
    assert result.ok
    assert Path(result.output.strip()).resolve() == tmp_path.resolve()


def test_runner_reports_missing_program():
    result = ShellCommandRunner().run("definitely-not-a-real-tool-xyz")
    assert result.exit_code == EXIT_NOT_STARTED


def test_check_returns_self_on_success():
    result = CommandResult("true", 0, "")
    assert result.check() is result


def test_failure_message_truncates_output():
    error = CommandFailedError("kubectl apply", 1, "x" * 2000)
    assert len(str(error)) < 600
    assert str(error).startswith("command failed (exit 1): kubectl apply")


def test_quote_escapes_spaces():
    assert quote("/tmp/my key.pem") == "'/tmp/my key.pem'"
    assert quote("test/localstack/") == "test/localstack/"


def test_require_command(runner):
    require_command(runner, "kubectl")
    assert runner.commands == ["command -v kubectl"]

    runner.fail("command -v kind", output="")
    with pytest.raises(MissingInputError, match="kind"):
        require_command(runner, "kind")


def test_runner_env_overlay(tmp_path):
    kubeconfig = tmp_path / "test-cluster-1.kubeconfig"
    result = ShellCommandRunner(env={"KUBECONFIG": str(kubeconfig)}).run('echo "$KUBECONFIG"; echo "$PATH"')
    lines = result.output.strip().splitlines()
    assert lines[0] == str(kubeconfig)
    assert lines[1]
