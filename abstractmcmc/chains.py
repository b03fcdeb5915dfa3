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
"""Chain representations produced by bundling the transitions of a run."""

import dataclasses

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

from arviz import InferenceData, concat
from arviz.data.base import dict_to_dataset

from abstractmcmc.exceptions import IncorrectArgumentsError

if TYPE_CHECKING:
    from abstractmcmc.interface import AbstractSampler

__all__ = ["AbstractChains", "chainscat", "transitions_to_inferencedata"]


class AbstractChains(ABC):
    """Base class for objects that store the samples of one or more chains.

    Subclasses passed as ``chain_type`` are built by the default
    ``AbstractSampler.bundle_samples`` through :meth:`from_transitions`, and the
    chains of a parallel run are combined with :meth:`cat`.
    """

    @classmethod
    @abstractmethod
    def from_transitions(cls, transitions, *, model, sampler, N: int, **kwargs) -> "AbstractChains":
        """Build a chain from the container of ``N`` transitions."""

    @classmethod
    def cat(cls, chains: Sequence["AbstractChains"]) -> Any:
        """Combine the chains of a parallel run, given in chain order.

        The default keeps them as a list. Representations with a chain dimension
        should override this to stack along it.
        """
        return list(chains)


def chainscat(*chains):
    """Concatenate chains along a new chain dimension.

    ``InferenceData`` objects are concatenated along ``"chain"`` with renumbered
    chain coordinates; ``AbstractChains`` use the ``cat`` of their type.
    """
    if not chains:
        raise IncorrectArgumentsError("`chainscat` needs at least one chain.")
    if all(isinstance(c, InferenceData) for c in chains):
        if len(chains) == 1:
            return chains[0]
        return concat(*chains, dim="chain", reset_dim=True)
    if all(isinstance(c, AbstractChains) for c in chains):
        return type(chains[0]).cat(chains)
    raise TypeError(
        "Cannot concatenate chains of types "
        f"{sorted({type(c).__name__ for c in chains})} along a chain dimension."
    )


def _transition_to_dict(transition) -> dict[str, Any]:
    if isinstance(transition, Mapping):
        return dict(transition)
    if dataclasses.is_dataclass(transition) and not isinstance(transition, type):
        return {f.name: getattr(transition, f.name) for f in dataclasses.fields(transition)}
    if isinstance(transition, tuple) and hasattr(transition, "_asdict"):
        return dict(transition._asdict())
    return {"x": transition}


def transitions_to_inferencedata(
    transitions: Sequence[Any],
    *,
    sampler: "AbstractSampler | None" = None,
) -> InferenceData:
    """Store the transitions of one chain in the ``posterior`` group of an ``InferenceData``.

    Transitions may be mappings, dataclasses or namedtuples, whose fields become
    variables; any other value is stored as a variable named ``"x"``. Every variable
    has the dimensions ``("chain", "draw", ...)`` with a single chain.
    """
    import abstractmcmc

    points = [_transition_to_dict(transition) for transition in transitions]
    if not points:
        raise IncorrectArgumentsError("Cannot build an InferenceData without transitions.")

    names = list(points[0])
    try:
        posterior = {
            name: np.stack([np.asarray(point[name]) for point in points])[None, ...]
            for name in names
        }
    except KeyError as err:
        raise IncorrectArgumentsError(
            f"All transitions must define the same fields, missing {err.args[0]!r}."
        ) from err

    attrs = {"sampler": sampler.name} if sampler is not None else None
    posterior_dataset = dict_to_dataset(posterior, library=abstractmcmc, attrs=attrs)
    return InferenceData(posterior=posterior_dataset)
