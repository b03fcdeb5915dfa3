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
import logging

import numpy as np
import numpy.testing as npt
import pytest

from arviz import InferenceData

import abstractmcmc as amc

from abstractmcmc.exceptions import (
    IncorrectArgumentsError,
    SamplingError,
    StepNotImplementedError,
)
from abstractmcmc.util import NO_TRANSITION
from tests.interface import (
    BareSampler,
    CountingSampler,
    CountTransition,
    FailingSampler,
    MyChain,
    MyModel,
    MySampler,
    MyTransition,
    RandomWalkSampler,
    RecordingSampler,
)


class TestSample:
    def test_counting_scenario(self, fail_on_warning):
        chain = amc.sample(MyModel(), CountingSampler(), 5, progress=False)
        assert chain == [(1, 1), (2, 2), (3, 3), (4, 4), (5, 5)]
        assert all(isinstance(t, CountTransition) for t in chain)

    @pytest.mark.parametrize("N", [1, 2, 10, 137])
    def test_length_and_threading(self, N):
        sampler = RecordingSampler()
        chain = amc.sample(MyModel(), sampler, N, progress=False)

        assert len(chain) == N
        steps = [call for call in sampler.calls if call[0] == "step"]
        assert [iteration for _, iteration, _ in steps] == list(range(1, N + 1))
        assert steps[0][2] is NO_TRANSITION
        for i in range(1, N):
            # every step received the transition saved at the previous position
            assert steps[i][2] is chain[i - 1]

    @pytest.mark.parametrize("N", [0, -1, -10])
    def test_invalid_number_of_samples(self, N):
        sampler = RecordingSampler()
        with pytest.raises(IncorrectArgumentsError, match="greater than 0"):
            amc.sample(MyModel(), sampler, N)
        assert sampler.calls == []

    @pytest.mark.parametrize("N", [2.5, "3", None, True])
    def test_non_integer_number_of_samples(self, N):
        with pytest.raises(IncorrectArgumentsError, match="must be an integer"):
            amc.sample(MyModel(), CountingSampler(), N)

    def test_numpy_integer_number_of_samples(self):
        chain = amc.sample(MyModel(), CountingSampler(), np.int64(3), progress=False)
        assert len(chain) == 3

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            amc.sample(MyModel(), CountingSampler(), 0)

    def test_unknown_progress_style_fails_before_stepping(self):
        sampler = RecordingSampler()
        with pytest.raises(IncorrectArgumentsError, match="not recognized"):
            amc.sample(MyModel(), sampler, 5, progress_style="fancy")
        assert sampler.calls == []

    def test_unknown_progress_style_fails_without_progress(self):
        sampler = RecordingSampler()
        with pytest.raises(IncorrectArgumentsError):
            amc.sample(MyModel(), sampler, 5, progress=False, progress_style="fancy")
        assert sampler.calls == []

    def test_hook_order(self):
        sampler = RecordingSampler()
        amc.sample(MyModel(), sampler, 3)
        assert sampler.hooks() == [
            "setup",
            "progress_init",
            "step",
            "progress_report",
            "step",
            "progress_report",
            "step",
            "progress_report",
            "finalize",
            "bundle_samples",
        ]

    def test_kwargs_are_forwarded(self):
        sampler = RecordingSampler()
        amc.sample(MyModel(), sampler, 2, progress=False, sleepy=True)
        assert sampler.calls[0] == ("setup", 2, {"sleepy": True})

    def test_finalize_sees_all_transitions(self):
        sampler = RecordingSampler()
        chain = amc.sample(MyModel(), sampler, 4, progress=False)
        name, N, transitions = sampler.calls[-2]
        assert name == "finalize"
        assert N == 4
        assert transitions == chain

    def test_default_bundling_is_identity(self):
        class KeepContainer(CountingSampler):
            def finalize(self, rng, model, N, transitions, **kwargs):
                self.container = transitions

        sampler = KeepContainer()
        chain = amc.sample(MyModel(), sampler, 4, progress=False)
        assert chain is sampler.container

    def test_none_is_a_valid_transition(self):
        class NoneSampler(amc.AbstractSampler):
            def step(self, rng, model, N, transition=NO_TRANSITION, *, iteration, **kwargs):
                assert (transition is NO_TRANSITION) == (iteration == 1)
                return None

        assert amc.sample(MyModel(), NoneSampler(), 3, progress=False) == [None, None, None]

    def test_custom_container(self):
        class ArraySampler(CountingSampler):
            def transitions_init(self, transition, model, N, **kwargs):
                return np.zeros((N, len(transition)), dtype=int)

            def transitions_save(self, transitions, iteration, transition, model, N, **kwargs):
                transitions[iteration - 1] = transition

        chain = amc.sample(MyModel(), ArraySampler(), 3, progress=False)
        npt.assert_array_equal(chain, [[1, 1], [2, 2], [3, 3]])

    def test_slot_is_written_once(self):
        class SaveTwice(CountingSampler):
            def transitions_save(self, transitions, iteration, transition, model, N, **kwargs):
                super().transitions_save(transitions, iteration, transition, model, N)
                super().transitions_save(transitions, iteration, transition, model, N)

        with pytest.raises(SamplingError, match="iteration 1 was already saved"):
            amc.sample(MyModel(), SaveTwice(), 3, progress=False)

    def test_step_not_implemented(self):
        with pytest.raises(
            StepNotImplementedError,
            match=(
                "not implemented for models of type MyModel, samplers of type BareSampler, "
                "and transitions of type _NoTransitionType"
            ),
        ) as exinfo:
            amc.sample(MyModel(), BareSampler(), 3, progress=False)
        assert isinstance(exinfo.value, NotImplementedError)
        assert exinfo.value.sampler_type is BareSampler

    def test_step_errors_propagate(self):
        sampler = FailingSampler(fail_at=3)
        with pytest.raises(RuntimeError, match="step 3 failed"):
            amc.sample(MyModel(), sampler, 5)

    def test_reproducible_with_seed(self):
        chain1 = amc.sample(MyModel(), RandomWalkSampler(), 20, rng=123, progress=False)
        chain2 = amc.sample(MyModel(), RandomWalkSampler(), 20, rng=123, progress=False)
        chain3 = amc.sample(MyModel(), RandomWalkSampler(), 20, rng=124, progress=False)
        assert chain1 == chain2
        assert chain1 != chain3

    def test_generator_is_shared(self):
        rng = np.random.default_rng(42)
        amc.sample(MyModel(), RandomWalkSampler(), 5, rng=rng, progress=False)

        expected = np.random.default_rng(42)
        for _ in range(5):
            expected.normal()
        assert rng.normal() == expected.normal()

    def test_sampler_state_mutates(self):
        sampler = RandomWalkSampler()
        chain = amc.sample(MyModel(), sampler, 7, progress=False)
        assert sampler.nsteps == 7
        assert sampler.position == chain[-1]["x"]

    def test_logging(self, caplog):
        with caplog.at_level(logging.INFO, logger="abstractmcmc"):
            amc.sample(MyModel(), CountingSampler(), 5, progress=False)
        messages = [r.message for r in caplog.records if r.name == "abstractmcmc.sampling.mcmc"]
        assert messages[0] == "Sampling 1 chain for 5 draws"
        assert messages[1].startswith("Sampling 1 chain for 5 draws took")

    def test_default_hooks_log_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="abstractmcmc"):
            amc.sample(MyModel(), CountingSampler(), 2, progress=False)
        messages = [r.message for r in caplog.records if r.name == "abstractmcmc.interface"]
        assert "the default `setup` function is used for MyModel and CountingSampler" in messages
        assert any(m.startswith("the default `finalize` function is used") for m in messages)


class TestBundling:
    def test_chain_type(self):
        chain = amc.sample(MyModel(), MySampler(), 10, rng=1, progress=False, chain_type=MyChain)
        transitions = amc.sample(MyModel(), MySampler(), 10, rng=1, progress=False)

        assert isinstance(chain, MyChain)
        assert len(chain) == 10
        npt.assert_array_equal(chain.as_, [t.a for t in transitions])
        npt.assert_array_equal(chain.bs, [t.b for t in transitions])

    def test_inferencedata(self):
        idata = amc.sample(
            MyModel(), MySampler(), 10, rng=1, progress=False, chain_type=InferenceData
        )
        assert isinstance(idata, InferenceData)
        assert idata.posterior["a"].dims == ("chain", "draw")
        assert idata.posterior["a"].shape == (1, 10)
        assert idata.posterior.attrs["sampler"] == "MySampler"
        assert idata.posterior.attrs["inference_library"] == "abstractmcmc"

    def test_inferencedata_from_scalars(self):
        idata = amc.sample(
            MyModel(), RandomWalkSampler(), 4, rng=1, progress=False, chain_type=InferenceData
        )
        assert idata.posterior["x"].shape == (1, 4)

    def test_unknown_chain_type(self):
        with pytest.raises(IncorrectArgumentsError, match="does not know how to bundle"):
            amc.sample(MyModel(), CountingSampler(), 3, progress=False, chain_type=dict)

    def test_unknown_chain_type_fails_before_setup(self):
        class SetupRecorder(CountingSampler):
            calls = 0

            def setup(self, rng, model, N, **kwargs):
                type(self).calls += 1

        with pytest.raises(IncorrectArgumentsError, match="into <class 'dict'>"):
            amc.sample(MyModel(), SetupRecorder(), 4, progress=False, chain_type=dict)
        assert SetupRecorder.calls == 0

    def test_custom_bundling_decides_chain_types(self):
        class DictBundler(CountingSampler):
            def bundle_samples(self, rng, model, N, transitions, chain_type, **kwargs):
                if chain_type is dict:
                    return {t.index: t.value for t in transitions}
                return super().bundle_samples(rng, model, N, transitions, chain_type, **kwargs)

        chain = amc.sample(MyModel(), DictBundler(), 3, progress=False, chain_type=dict)
        assert chain == {1: 1, 2: 2, 3: 3}

    def test_overridden_bundling_still_rejects_unknown_chain_type(self):
        sampler = RecordingSampler()
        with pytest.raises(IncorrectArgumentsError, match="does not know how to bundle"):
            amc.sample(MyModel(), sampler, 2, progress=False, chain_type=set)
        assert sampler.hooks()[-1] == "bundle_samples"

    def test_bundling_does_not_mutate_transitions(self):
        class KeepContainer(MySampler):
            def finalize(self, rng, model, N, transitions, **kwargs):
                self.snapshot = [MyTransition(t.a, t.b) for t in transitions]
                self.container = transitions

        sampler = KeepContainer()
        amc.sample(MyModel(), sampler, 5, progress=False, chain_type=InferenceData)
        assert sampler.container == sampler.snapshot


class TestStatisticalProperties:
    def test_basic_sampling(self):
        N = 1_000
        chain = amc.sample(MyModel(), MySampler(), N, rng=1234, progress=False)

        assert len(chain) == N
        assert all(isinstance(t, MyTransition) for t in chain)

        a = np.array([t.a for t in chain])
        b = np.array([t.b for t in chain])
        npt.assert_allclose(a.mean(), 0.5, atol=5e-2)
        npt.assert_allclose(a.var(), 1 / 12, atol=2e-2)
        npt.assert_allclose(b.mean(), 0.0, atol=0.15)
        npt.assert_allclose(b.var(), 1.0, atol=0.2)
