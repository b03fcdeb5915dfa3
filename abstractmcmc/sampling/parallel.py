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

"""Sampling of independent chains on a pool of threads."""

import contextlib
import logging
import threading
import time

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from copy import deepcopy
from typing import Any, Literal

import numpy as np

from arviz import InferenceData
from rich.theme import Theme
from threadpoolctl import threadpool_limits

from abstractmcmc.chains import AbstractChains, chainscat
from abstractmcmc.exceptions import IncorrectArgumentsError, ParallelSamplingError
from abstractmcmc.interface import AbstractSampler, check_chain_type
from abstractmcmc.progress_bar import (
    ProgressStyle,
    RichChainsProgress,
    check_progress_style,
    default_progress_theme,
)
from abstractmcmc.sampling.mcmc import _check_draws, _sample
from abstractmcmc.util import (
    RandomState,
    _cpu_count,
    _get_seeds_per_chain,
    get_random_generator,
    reseed_generator,
)

__all__ = ["sample_parallel"]

_log = logging.getLogger(__name__)


def _combine_chains(chains: list, chain_type: type | None) -> Any:
    if isinstance(chain_type, type) and issubclass(chain_type, AbstractChains):
        return chain_type.cat(chains)
    if chain_type is InferenceData:
        return chainscat(*chains)
    return chains


def sample_parallel(
    model,
    sampler: AbstractSampler,
    N: int,
    nchains: int,
    *,
    rng: RandomState = None,
    cores: int | None = None,
    blas_cores: int | None | Literal["auto"] = None,
    progress: bool = True,
    progress_style: ProgressStyle = "default",
    progressbar_theme: Theme | None = default_progress_theme,
    chain_type: type | None = None,
    **kwargs,
) -> Any:
    """Sample ``nchains`` independent chains of length ``N`` using a pool of threads.

    One seed per chain is drawn from ``rng`` before any thread starts. The random
    source, the model and the sampler are deep copied for each thread, and once more
    for each chain, so that chains never share mutable state. Chain ``k`` is then
    sampled with a generator seeded with the ``k``-th seed. The result of chain ``k``
    therefore only depends on that seed and on the initial model and sampler, not on
    the number of threads or on the order in which they finish.

    Parameters
    ----------
    model : object
        The target of inference. Never mutated; chains work on copies.
    sampler : AbstractSampler
        The sampler. Never mutated; chains work on copies.
    N : int
        The number of samples to draw per chain. Must be at least 1.
    nchains : int
        The number of chains to sample. Must be at least 1.
    rng : int, Generator, BitGenerator, SeedSequence, sequence of int or None, optional
        Source of the per-chain seeds. A ``Generator`` or ``BitGenerator`` advances by
        the seed draw.
        A sequence must hold exactly ``nchains`` seeds, which are used as given.
        ``None`` draws the seeds from a fresh, unseeded generator.
    cores : int, optional
        The number of threads. Defaults to the number of CPUs, and is never larger
        than ``nchains``.
    blas_cores : int or "auto" or None, default=None
        The total number of threads BLAS and OpenMP functions may use while sampling.
        ``"auto"`` uses the number of threads of the pool. ``None`` leaves the BLAS
        configuration alone.
    progress : bool, default=True
        Whether to display a progress bar counting finished chains. Per-chain
        progress is never reported.
    progress_style : {"default", "plain", "disabled"}, default="default"
        Validated like in :func:`~abstractmcmc.sample`; ``"disabled"`` also hides
        the chain counter.
    progressbar_theme : Theme, optional
        Rich theme for the chain counter.
    chain_type : type, optional
        Chain representation of each chain. Chains of an
        :class:`~abstractmcmc.chains.AbstractChains` type are combined with its
        ``cat``, ``InferenceData`` chains are concatenated along ``"chain"``, and
        any other output is returned as a list in chain order.
    **kwargs
        Extra keyword arguments are forwarded to every sampler hook.

    Raises
    ------
    IncorrectArgumentsError
        For invalid arguments, including a ``chain_type`` that the default
        ``bundle_samples`` cannot build, before any chain starts.
    ParallelSamplingError
        If a chain failed. Raised once all threads are done, for the failing chain
        with the lowest index, with the original error as its ``__cause__``. A thread
        stops at its first failing chain; the other threads run all their chains, so
        the reported chain does not depend on scheduling.
    """
    N = _check_draws(N)
    nchains = _check_draws(nchains, "nchains")
    if check_progress_style(progress_style) == "disabled":
        progress = False
    check_chain_type(sampler, chain_type)

    if cores is None:
        cores = _cpu_count()
    cores = min(_check_draws(cores, "cores"), nchains)

    joined_blas_limiter: Callable[[], Any]
    if blas_cores == "auto":
        blas_cores = cores
    if blas_cores is None:
        joined_blas_limiter = contextlib.nullcontext
    elif isinstance(blas_cores, int) and not isinstance(blas_cores, bool):

        def joined_blas_limiter():
            return threadpool_limits(limits=blas_cores)

    else:
        raise IncorrectArgumentsError(
            f"Invalid argument `blas_cores`, must be int, 'auto' or None: {blas_cores}"
        )

    if isinstance(rng, np.random.Generator | np.random.BitGenerator):
        template_rng = get_random_generator(rng)
    else:
        template_rng = np.random.default_rng()
    seeds: Sequence[int] = _get_seeds_per_chain(rng, nchains)
    _log.debug(f"Seeds per chain: {list(seeds)}")

    # Private copies for every thread, made before any thread starts.
    rngs = [deepcopy(template_rng) for _ in range(cores)]
    models = [deepcopy(model) for _ in range(cores)]
    samplers = [deepcopy(sampler) for _ in range(cores)]

    chains: list[Any] = [None] * nchains
    stop = threading.Event()

    progress_bar = RichChainsProgress(theme=progressbar_theme, disable=not progress)

    def _sample_chains(worker: int) -> None:
        worker_rng = rngs[worker]
        for chain in range(worker, nchains, cores):
            if stop.is_set():
                return
            _log.debug(f"Thread {worker} starts chain {chain}")
            worker_rng = reseed_generator(worker_rng, seeds[chain])
            try:
                chains[chain] = _sample(
                    deepcopy(models[worker]),
                    deepcopy(samplers[worker]),
                    N,
                    rng=worker_rng,
                    progress=False,
                    progress_style="disabled",
                    chain_type=chain_type,
                    **kwargs,
                )
            except Exception as e:
                raise ParallelSamplingError(f"Chain {chain} failed: {e!r}", chain) from e
            _log.debug(f"Thread {worker} finished chain {chain}")
            progress_bar.advance(task)

    _log.info(f"Multithreaded sampling ({nchains} chains in {cores} threads)")
    t_start = time.time()

    errors: list[ParallelSamplingError] = []
    with joined_blas_limiter(), progress_bar:
        task = progress_bar.add_task("Chains", total=nchains)
        executor = ThreadPoolExecutor(max_workers=cores, thread_name_prefix="abstractmcmc")
        try:
            futures = [executor.submit(_sample_chains, worker) for worker in range(cores)]
            for future in futures:
                try:
                    future.result()
                except ParallelSamplingError as error:
                    errors.append(error)
        except BaseException:
            stop.set()
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        else:
            executor.shutdown(wait=True)

    if errors:
        raise min(errors, key=lambda error: error.chain)

    t_sampling = time.time() - t_start
    _log.info(
        f"Sampling {nchains} chains for {N:_d} draws "
        f"({N * nchains:_d} draws total) took {t_sampling:.0f} seconds."
    )

    return _combine_chains(chains, chain_type)
