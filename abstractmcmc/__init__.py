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


"""abstractmcmc: a generic driver for iterative Markov chain Monte Carlo sampling."""

import logging

__version__ = "0.1.0"

_log = logging.getLogger(__name__)

if not logging.root.handlers:
    _log.setLevel(logging.INFO)
    if len(_log.handlers) == 0:
        handler = logging.StreamHandler()
        _log.addHandler(handler)


from abstractmcmc import sampling
from abstractmcmc.chains import *
from abstractmcmc.exceptions import *
from abstractmcmc.interface import *
from abstractmcmc.progress_bar import (
    AbstractCallback,
    DefaultCallback,
    NoCallback,
    generate_callback,
)
from abstractmcmc.sampling import *
from abstractmcmc.util import NO_TRANSITION, get_random_generator
