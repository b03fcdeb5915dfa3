#   Copyright 2024 The PyMC Developers
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.
"""Callbacks observing the progress of a single chain."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

import numpy as np

from rich.progress import TaskID
from rich.theme import Theme

from abstractmcmc.exceptions import IncorrectArgumentsError
from abstractmcmc.progress_bar.rich_progress import RichDrawProgress

if TYPE_CHECKING:
    from abstractmcmc.interface import AbstractSampler

__all__ = [
    "AbstractCallback",
    "DefaultCallback",
    "NoCallback",
    "ProgressStyle",
    "check_progress_style",
    "generate_callback",
]

ProgressStyle = Literal["default", "disabled", "disable", "plain", False]


def draw_speed(elapsed: float | None, completed: int) -> tuple[float, str]:
    """Return the sampling speed and its unit, ``draws/s`` or ``s/draw`` for slow chains."""
    speed = completed / max(elapsed or 0.0, 1e-6)
    if speed >= 1 or completed == 0:
        return speed, "draws/s"
    return 1 / speed, "s/draw"


class AbstractCallback:
    """Base class for objects reporting the progress of a sampling run.

    A callback is created once per chain, entered as a context manager for the
    duration of the run, and its :meth:`update` is called after every completed
    iteration. Callbacks only observe; they must not alter the model, the sampler
    or the transition they are shown.

    To report progress differently, subclass this and return an instance from
    :meth:`AbstractSampler.progress_init <abstractmcmc.interface.AbstractSampler.progress_init>`.
    """

    def __enter__(self) -> AbstractCallback:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    def update(self, iteration: int, transition: Any = None) -> None:
        """Record that ``iteration`` has completed with ``transition``."""


class NoCallback(AbstractCallback):
    """Callback that reports nothing."""


class DefaultCallback(AbstractCallback):
    """Plain counter-style progress display rendered with rich.

    Parameters
    ----------
    N : int
        Total number of iterations of the chain.
    theme : Theme, optional
        Rich theme for progress bar colors. Defaults to ``default_progress_theme``.
    description : str
        Text shown in front of the bar.
    """

    def __init__(self, N: int, theme: Theme | None = None, description: str = "Sampling"):
        self.N = N
        self.description = description
        self.completed = 0
        self._progress = RichDrawProgress(theme=theme)
        self._task: TaskID | None = None

    def __enter__(self) -> DefaultCallback:
        self._progress.__enter__()
        self._task = self._progress.add_task(
            self.description,
            total=self.N,
            completed=self.completed,
            sampling_speed=0,
            speed_unit="draws/s",
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._task is not None:
            self._progress.update(self._task, completed=self.completed, refresh=True)
            self._task = None
        self._progress.__exit__(exc_type, exc_val, exc_tb)

    def update(self, iteration: int, transition: Any = None) -> None:
        self.completed += 1
        if self._task is None:
            return

        speed, unit = draw_speed(self._progress.tasks[0].elapsed, self.completed)
        self._progress.update(
            self._task,
            completed=self.completed,
            sampling_speed=speed,
            speed_unit=unit,
        )


def check_progress_style(progress_style: Any) -> str:
    """Validate ``progress_style`` and return its canonical name.

    Raises
    ------
    IncorrectArgumentsError
        If the value is not one of ``"default"``, ``"plain"``, ``"disabled"``
        (alias ``"disable"`` or ``False``).
    """
    match progress_style:
        case "default":
            return "default"
        case "plain":
            return "plain"
        case "disabled" | "disable" | False:
            return "disabled"
        case _:
            raise IncorrectArgumentsError(
                f"Keyword argument `progress_style={progress_style!r}` is not recognized. "
                "Valid values are 'default', 'plain' and 'disabled' (or False)."
            )


def generate_callback(
    rng: np.random.Generator,
    model,
    sampler: AbstractSampler,
    N: int,
    *,
    progress_style: ProgressStyle = "default",
    **kwargs,
) -> AbstractCallback:
    """Build the callback selected by ``progress_style``.

    This function is not meant to be overridden. To add a custom callback,
    override ``AbstractSampler.progress_init`` instead.

    Options for ``progress_style`` include:

    - ``"default"`` which returns the result of ``sampler.progress_init``
    - ``"disabled"``, ``"disable"`` or ``False`` which returns a :class:`NoCallback`
    - ``"plain"`` which returns the simple :class:`DefaultCallback`
    """
    match check_progress_style(progress_style):
        case "default":
            return sampler.progress_init(rng, model, N, **kwargs)
        case "plain":
            return DefaultCallback(N)
        case _:
            return NoCallback()
