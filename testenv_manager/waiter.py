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

"""Fixed-interval polling of cluster conditions."""

from __future__ import annotations

from collections.abc import Callable

from tenacity import RetryCallState, RetryError, Retrying, retry_if_result, stop_after_delay

from testenv_manager import logger
from testenv_manager.errors import DeadlineExceededError


def _fixed_wait_within(timeout: float, interval: float) -> Callable[[RetryCallState], float]:
    """Build a tenacity wait that never sleeps past the deadline.

    The final sleep is shortened so the last evaluation lands on the deadline.
    """
    def _wait(retry_state: RetryCallState) -> float:
        remaining = timeout - retry_state.seconds_since_start
        return max(0.0, min(interval, remaining))

    return _wait


def wait_for(
    predicate: Callable[[], bool],
    timeout: float,
    interval: float,
    description: str = "condition",
) -> None:
    """Poll *predicate* until it returns True or *timeout* elapses.

    The first evaluation happens immediately. There is no backoff; callers pick
    an interval that matches how quickly the condition is expected to settle.

    Args:
        predicate: Zero-argument callable reading live cluster state.
        timeout: Maximum seconds to wait.
        interval: Seconds between evaluations.
        description: Human-readable name of the awaited condition.

    Raises:
        DeadlineExceededError: If the predicate is still False at the deadline.
    """
    retrying = Retrying(
        stop=stop_after_delay(timeout),
        wait=_fixed_wait_within(timeout, interval),
        retry=retry_if_result(lambda ready: not ready),
    )
    try:
        retrying(predicate)
    except RetryError as err:
        attempts = err.last_attempt.attempt_number
        raise DeadlineExceededError(
            f"timed out after {timeout:g}s waiting for {description} ({attempts} checks)"
        ) from err
    logger.debug("%s satisfied", description)
