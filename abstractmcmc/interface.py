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
"""Capability contracts that samplers and models implement."""

import logging

from abc import ABC
from typing import Any

import numpy as np

from arviz import InferenceData

from abstractmcmc.chains import AbstractChains, transitions_to_inferencedata
from abstractmcmc.exceptions import (
    IncorrectArgumentsError,
    SamplingError,
    StepNotImplementedError,
)
from abstractmcmc.progress_bar import AbstractCallback, DefaultCallback
from abstractmcmc.util import NO_TRANSITION

__all__ = ["AbstractModel", "AbstractSampler", "NO_TRANSITION", "check_chain_type"]

_log = logging.getLogger(__name__)


class AbstractModel:
    """A generic model type that can be used to perform inference.

    The drivers never look inside a model; they only hand it to the hooks of the sampler.
    """


class AbstractSampler(ABC):
    """Base class of custom samplers.

    Any persistent state information (particles, step sizes, ...) should be saved
    on the sampler instance. The drivers call the hooks below and never inspect the
    sampler otherwise. Only :meth:`step` must be overridden; every other hook has a
    default that a sampler author may override.

    Iterations are numbered from 1 in every hook. ``N`` is the number of requested
    iterations, or 0 when stepping without a bound through :func:`abstractmcmc.steps`.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    def setup(self, rng: np.random.Generator, model, N: int, **kwargs) -> None:
        """Perform the initial setup of the sampler for the provided ``model``.

        This function is not intended to return any value, any set up should mutate the
        sampler or the model in-place. A common use might be to instantiate a particle
        field for later use, or find an initial step size for a Hamiltonian sampler.
        """
        _log.debug(
            "the default `setup` function is used for %s and %s",
            type(model).__name__,
            type(self).__name__,
        )

    def step(
        self,
        rng: np.random.Generator,
        model,
        N: int,
        transition: Any = NO_TRANSITION,
        *,
        iteration: int,
        **kwargs,
    ) -> Any:
        """Return the transition for the next step of the sampler.

        Transitions describe the results of a single step. As an example, a transition
        might include a vector of parameters sampled from a prior distribution.

        ``step`` may modify the model or the sampler in-place. Every call after the first
        has access to the previous ``transition``; in the first call it is
        :data:`~abstractmcmc.util.NO_TRANSITION`.
        """
        raise StepNotImplementedError(model, self, transition)

    def transitions_init(self, transition: Any, model, N: int, **kwargs) -> Any:
        """Generate a container for the ``N`` transitions whose first one is ``transition``."""
        return [NO_TRANSITION] * N

    def transitions_save(
        self, transitions: Any, iteration: int, transition: Any, model, N: int, **kwargs
    ) -> None:
        """Save ``transition`` of the current ``iteration`` in the container of ``transitions``."""
        if transitions[iteration - 1] is not NO_TRANSITION:
            raise SamplingError(f"The transition of iteration {iteration} was already saved.")
        transitions[iteration - 1] = transition

    def finalize(self, rng: np.random.Generator, model, N: int, transitions: Any, **kwargs) -> None:
        """Perform final modifications after sampling, resulting in ``transitions``.

        This function is not intended to return any value. It is useful to transform
        the transitions in place, or perform any clean-up.
        """
        _log.debug(
            "the default `finalize` function is used for %s, %s and %s",
            type(model).__name__,
            type(self).__name__,
            type(transitions).__name__,
        )

    def bundle_samples(
        self,
        rng: np.random.Generator,
        model,
        N: int,
        transitions: Any,
        chain_type: type | None,
        **kwargs,
    ) -> Any:
        """Turn the container of ``transitions`` into a chain of type ``chain_type``.

        By default, ``chain_type=None`` returns the container unchanged, an
        :class:`~abstractmcmc.chains.AbstractChains` subclass is built with its
        ``from_transitions`` constructor and :class:`arviz.InferenceData` stores the
        transitions in its ``posterior`` group.
        """
        if not _is_bundled_by_default(chain_type):
            raise _unknown_chain_type(self, chain_type)
        if chain_type is None:
            return transitions
        if chain_type is InferenceData:
            return transitions_to_inferencedata(transitions, sampler=self)
        return chain_type.from_transitions(transitions, model=model, sampler=self, N=N, **kwargs)

    def progress_init(self, rng: np.random.Generator, model, N: int, **kwargs) -> AbstractCallback:
        """Build the callback used with ``progress_style="default"``.

        Defaults to the plain :class:`~abstractmcmc.progress_bar.DefaultCallback`.
        """
        return DefaultCallback(N)

    def progress_report(
        self,
        rng: np.random.Generator,
        model,
        N: int,
        iteration: int,
        transition: Any,
        callback: AbstractCallback,
        **kwargs,
    ) -> None:
        """Report the completion of ``iteration`` to ``callback``."""
        callback.update(iteration, transition)


def _is_bundled_by_default(chain_type: Any) -> bool:
    if chain_type is None or chain_type is InferenceData:
        return True
    return isinstance(chain_type, type) and issubclass(chain_type, AbstractChains)


def _unknown_chain_type(sampler: AbstractSampler, chain_type: Any) -> IncorrectArgumentsError:
    return IncorrectArgumentsError(
        f"Sampler {sampler.name} does not know how to bundle samples into {chain_type!r}."
    )


def check_chain_type(sampler: AbstractSampler, chain_type: Any) -> None:
    """Reject a ``chain_type`` that the default ``bundle_samples`` cannot build.

    Samplers that override ``bundle_samples`` decide themselves which chain types
    they support, so nothing is checked for them.

    Raises
    ------
    IncorrectArgumentsError
        If ``chain_type`` is not ``None``, :class:`arviz.InferenceData` or a subclass
        of :class:`~abstractmcmc.chains.AbstractChains`.
    """
    if type(sampler).bundle_samples is not AbstractSampler.bundle_samples:
        return
    if not _is_bundled_by_default(chain_type):
        raise _unknown_chain_type(sampler, chain_type)
