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

"""Functions for single-chain MCMC sampling."""

import logging
import operator
import time

from collections.abc import Iterator
from typing import Any

import numpy as np

from abstractmcmc.exceptions import IncorrectArgumentsError
from abstractmcmc.interface import AbstractSampler, check_chain_type
from abstractmcmc.progress_bar import (
    NoCallback,
    ProgressStyle,
    check_progress_style,
    generate_callback,
)
from abstractmcmc.util import NO_TRANSITION, RandomGenerator, get_random_generator

__all__ = [
    "sample",
    "steps",
    "Stepper",
]

_log = logging.getLogger(__name__)


def _check_draws(N: Any, name: str = "N") -> int:
    if isinstance(N, bool | np.bool_):
        raise IncorrectArgumentsError(f"Argument `{name}` must be an integer, got {N!r}.")
    try:
        N = operator.index(N)
    except TypeError:
        raise IncorrectArgumentsError(f"Argument `{name}` must be an integer, got {N!r}.")
    if N < 1:
        raise IncorrectArgumentsError(f"Argument `{name}` must be greater than 0, got {N}.")
    return N


def sample(
    model,
    sampler: AbstractSampler,
    N: int,
    *,
    rng: RandomGenerator = None,
    progress: bool = True,
    progress_style: ProgressStyle = "default",
    chain_type: type | None = None,
    **kwargs,
) -> Any:
    r"""Return ``N`` samples from the MCMC ``sampler`` for the provided ``model``.

    The sampler is set up, stepped ``N`` times (every step receives the previous
    transition), its transitions are saved in a container, the sampler is given the
    chance to finalize them, and the container is bundled into the requested chain
    representation.

    Parameters
    ----------
    model : object
        The target of inference. It is handed to the sampler hooks unexamined.
    sampler : AbstractSampler
        The sampler. Its state may be mutated in place by its hooks.
    N : int
        The number of samples to draw. Must be at least 1.
    rng : int, Generator, BitGenerator or None, optional
        Random source of the chain. A ``Generator`` is used as is and advances with the
        chain. ``None`` creates a fresh, unseeded generator; the global NumPy random
        state is never used.
    progress : bool, default=True
        Whether to report progress after every iteration.
    progress_style : {"default", "plain", "disabled"}, default="default"
        Which reporting to use. ``"default"`` uses the callback built by
        ``sampler.progress_init``, ``"plain"`` a simple progress bar and ``"disabled"``
        (or ``False``) reports nothing.
    chain_type : type, optional
        Chain representation passed to ``sampler.bundle_samples``. By default the
        container of transitions is returned.
    **kwargs
        Extra keyword arguments are forwarded to every sampler hook.

    Returns
    -------
    chain
        The output of ``sampler.bundle_samples``.

    Raises
    ------
    IncorrectArgumentsError
        If ``N`` is smaller than 1, ``progress_style`` is not recognized or the default
        ``bundle_samples`` cannot build ``chain_type``. All are checked before the
        sampler is set up.
    StepNotImplementedError
        If the sampler does not implement ``step``.
    """
    N = _check_draws(N)
    check_progress_style(progress_style)
    check_chain_type(sampler, chain_type)
    rng = get_random_generator(rng, copy=False)

    _log.info(f"Sampling 1 chain for {N:_d} draws")
    t_start = time.time()

    chain = _sample(
        model,
        sampler,
        N,
        rng=rng,
        progress=progress,
        progress_style=progress_style,
        chain_type=chain_type,
        **kwargs,
    )

    t_sampling = time.time() - t_start
    _log.info(f"Sampling 1 chain for {N:_d} draws took {t_sampling:.0f} seconds.")
    return chain


def _sample(
    model,
    sampler: AbstractSampler,
    N: int,
    *,
    rng: np.random.Generator,
    progress: bool,
    progress_style: ProgressStyle,
    chain_type: type | None,
    **kwargs,
) -> Any:
    """Sample one chain from already validated arguments."""
    sampler.setup(rng, model, N, **kwargs)

    if progress:
        callback = generate_callback(
            rng, model, sampler, N, progress_style=progress_style, **kwargs
        )
    else:
        callback = NoCallback()
    report = not isinstance(callback, NoCallback)

    with callback:
        transition = sampler.step(rng, model, N, NO_TRANSITION, iteration=1, **kwargs)

        transitions = sampler.transitions_init(transition, model, N, **kwargs)
        sampler.transitions_save(transitions, 1, transition, model, N, **kwargs)

        if report:
            sampler.progress_report(rng, model, N, 1, transition, callback, **kwargs)

        for i in range(2, N + 1):
            transition = sampler.step(rng, model, N, transition, iteration=i, **kwargs)
            sampler.transitions_save(transitions, i, transition, model, N, **kwargs)
            if report:
                sampler.progress_report(rng, model, N, i, transition, callback, **kwargs)

    sampler.finalize(rng, model, N, transitions, **kwargs)

    return sampler.bundle_samples(rng, model, N, transitions, chain_type, **kwargs)


class Stepper(Iterator):
    """Infinite iterator over the transitions of a sampler.

    Every ``next`` takes exactly one step, handing the previously returned transition
    to the sampler. The iterator is single-pass: ``iter(stepper)`` returns the stepper
    itself, so a new one has to be created with :func:`steps` to start over.
    """

    def __init__(self, rng: np.random.Generator, model, sampler: AbstractSampler, kwargs: dict):
        self.rng = rng
        self.model = model
        self.sampler = sampler
        self.kwargs = kwargs
        self.iteration = 0
        self._transition = NO_TRANSITION

    def __iter__(self) -> "Stepper":
        return self

    def __next__(self) -> Any:
        iteration = self.iteration + 1
        transition = self.sampler.step(
            self.rng, self.model, 0, self._transition, iteration=iteration, **self.kwargs
        )
        self.iteration = iteration
        self._transition = transition
        return transition


def steps(
    model,
    sampler: AbstractSampler,
    *,
    rng: RandomGenerator = None,
    **kwargs,
) -> Stepper:
    """Return an iterator that produces transitions continuously.

    ``sampler.setup`` is called once with ``N=0`` before the iterator is returned, and
    every step is taken with ``N=0`` since the number of steps is not known. The caller
    decides when to stop; no progress is reported.

    Examples
    --------
    .. code:: python

        for transition in steps(MyModel(), MySampler(), rng=1234):
            print(transition)
            if converged(transition):
                break
    """
    rng = get_random_generator(rng, copy=False)
    sampler.setup(rng, model, 0, **kwargs)
    return Stepper(rng, model, sampler, kwargs)
