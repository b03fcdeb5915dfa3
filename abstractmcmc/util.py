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

import multiprocessing
import operator

from collections import namedtuple
from collections.abc import Sequence
from copy import deepcopy
from typing import TypeAlias

import numpy as np

from abstractmcmc.exceptions import IncorrectArgumentsError

__all__ = [
    "NO_TRANSITION",
    "get_random_generator",
    "reseed_generator",
]


class _NoTransitionType:
    """Type for the `NO_TRANSITION` object to make it look nice in `help(...)` outputs."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __str__(self):
        return "NO_TRANSITION"

    def __repr__(self):
        return str(self)

    def __bool__(self):
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_NoTransitionType, ())


NO_TRANSITION = _NoTransitionType()
"""Previous transition handed to the first step of a chain.

It is distinct from ``None``, which is a valid transition value.
"""


RandomSeed: TypeAlias = None | int | Sequence[int] | np.ndarray
RandomState: TypeAlias = (
    RandomSeed | np.random.RandomState | np.random.Generator | np.random.BitGenerator | np.random.SeedSequence
)
RandomGenerator: TypeAlias = RandomSeed | np.random.Generator | np.random.BitGenerator


def _get_seeds_per_chain(
    random_state: RandomState,
    chains: int,
) -> Sequence[int] | np.ndarray:
    """Obtain or validate specified integer seeds per chain.

    This function process different possible sources of seeding and returns one integer
    seed per chain:
    1. If the input is an integer and a single chain is requested, the input is
        returned inside a tuple.
    2. If the input is a sequence or NumPy array with as many entries as chains,
        the input is returned.
    3. If the input is an integer and multiple chains are requested, new unique seeds
        are generated from NumPy default Generator seeded with that integer.
    4. If the input is None new unique seeds are generated from an unseeded NumPy default
        Generator.
    5. If a RandomState, Generator or BitGenerator is provided, new unique seeds are
        generated from it. The generator is advanced by the draw.
    6. If a SeedSequence is provided, new unique seeds are generated from a Generator
        built on it.

    Raises
    ------
    IncorrectArgumentsError
        If none of the conditions above are met
    """

    def _get_unique_seeds_per_chain(integers_fn):
        seeds = []
        while len(set(seeds)) != chains:
            seeds = [int(seed) for seed in integers_fn(2**30, dtype=np.int64, size=chains)]
        return seeds

    if random_state is None:
        return _get_unique_seeds_per_chain(np.random.default_rng().integers)
    if isinstance(random_state, np.random.Generator):
        return _get_unique_seeds_per_chain(random_state.integers)
    if isinstance(random_state, np.random.RandomState):
        return _get_unique_seeds_per_chain(random_state.randint)
    if isinstance(random_state, np.random.BitGenerator | np.random.SeedSequence):
        return _get_unique_seeds_per_chain(np.random.default_rng(random_state).integers)

    if not isinstance(random_state, list | tuple | np.ndarray):
        try:
            int_random_state = operator.index(random_state)  # type: ignore[arg-type]
        except TypeError:
            raise IncorrectArgumentsError(
                f"The `seeds` must be an integer, a Generator or array-like. Got {type(random_state)} instead."
            )
        if chains == 1:
            return (int_random_state,)
        return _get_unique_seeds_per_chain(np.random.default_rng(int_random_state).integers)

    if len(random_state) != chains:
        raise IncorrectArgumentsError(
            f"Number of seeds ({len(random_state)}) does not match the number of chains ({chains})."
        )

    try:
        return [operator.index(seed) for seed in random_state]
    except TypeError:
        raise IncorrectArgumentsError(f"The `seeds` must be integers, got {random_state!r}.")


RandomGeneratorState = namedtuple("RandomGeneratorState", ["bit_generator_state", "seed_seq_state"])


def get_state_from_generator(
    rng: np.random.Generator | np.random.BitGenerator,
) -> RandomGeneratorState:
    assert isinstance(rng, (np.random.Generator | np.random.BitGenerator))
    bit_gen: np.random.BitGenerator = (
        rng.bit_generator if isinstance(rng, np.random.Generator) else rng
    )

    return RandomGeneratorState(
        bit_generator_state=bit_gen.state,
        seed_seq_state=bit_gen.seed_seq.state,  # type: ignore[attr-defined]
    )


def random_generator_from_state(state: RandomGeneratorState) -> np.random.Generator:
    seed_seq = np.random.SeedSequence(**state.seed_seq_state)
    bit_generator_class = getattr(np.random, state.bit_generator_state["bit_generator"])
    bit_generator = bit_generator_class(seed_seq)
    bit_generator.state = state.bit_generator_state
    return np.random.Generator(bit_generator)


def get_random_generator(
    seed: RandomGenerator | np.random.RandomState = None, copy: bool = True
) -> np.random.Generator:
    """Build a :py:class:`~numpy.random.Generator` object from a suitable seed.

    Parameters
    ----------
    seed : None | int | Sequence[int] | numpy.random.Generator | numpy.random.BitGenerator
        A suitable seed to use to generate the :py:class:`~numpy.random.Generator` object.
        ``None`` builds a fresh, unseeded generator; no global random state is consulted.
        For more details on suitable seeds, refer to :py:func:`numpy.random.default_rng`.
    copy : bool
        Boolean flag that indicates whether to copy the seed object before feeding
        it to :py:func:`numpy.random.default_rng`. If `copy` is `False`, and the seed
        object is a ``Generator``, that same object is returned, so that the caller
        and the sampler share one random stream.

    Returns
    -------
    rng : numpy.random.Generator

    Raises
    ------
    TypeError:
        If the supplied ``seed`` is a :py:class:`~numpy.random.RandomState` object. We
        do not support using these legacy objects because they cannot be reseeded into
        an independent stream of the same kind.
    """
    if isinstance(seed, np.random.RandomState):
        raise TypeError(
            "Cannot create a random Generator from a RandomState object. "
            "Please provide a random seed, BitGenerator or Generator instead."
        )
    if copy:
        # Because of https://github.com/numpy/numpy/issues/27727, we can't use
        # deepcopy. We must rebuild a Generator without losing the SeedSequence information
        if isinstance(seed, np.random.Generator | np.random.BitGenerator):
            return random_generator_from_state(get_state_from_generator(seed))
        seed = deepcopy(seed)
    return np.random.default_rng(seed)


def reseed_generator(rng: np.random.Generator, seed: int) -> np.random.Generator:
    """Return a generator of the same kind as ``rng`` seeded with ``seed``.

    The output only depends on the type of ``rng.bit_generator`` and on ``seed``,
    never on the current state of ``rng``.
    """
    bit_generator_class = type(rng.bit_generator)
    return np.random.Generator(bit_generator_class(np.random.SeedSequence(seed)))


def _cpu_count() -> int:
    """Try to guess the number of worker threads the system can run at once."""
    try:
        cpus = multiprocessing.cpu_count()
    except NotImplementedError:
        cpus = 1
    return max(cpus, 1)
