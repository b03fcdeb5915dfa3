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

__all__ = [
    "SamplingError",
    "IncorrectArgumentsError",
    "StepNotImplementedError",
    "ParallelSamplingError",
]


class SamplingError(RuntimeError):
    pass


class IncorrectArgumentsError(ValueError):
    pass


class StepNotImplementedError(NotImplementedError):
    """Error raised when a sampler does not define how to take a step."""

    def __init__(self, model, sampler, transition):
        self.model_type = type(model)
        self.sampler_type = type(sampler)
        self.transition_type = type(transition)
        super().__init__(
            f"function `step` is not implemented for models of type {self.model_type.__name__}, "
            f"samplers of type {self.sampler_type.__name__}, "
            f"and transitions of type {self.transition_type.__name__}"
        )


class ParallelSamplingError(SamplingError):
    """Error from one of the chains of a parallel sampling run."""

    def __init__(self, message, chain):
        super().__init__(message)
        self.chain = chain
