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
"""Progress reporting for abstractmcmc sampling.

Public API
----------
AbstractCallback
    Base class of progress observers; one instance per chain.
NoCallback
    Callback that reports nothing.
DefaultCallback
    Plain rich progress bar counting completed iterations.
generate_callback
    Select a callback from the ``progress_style`` option.
check_progress_style
    Validate a ``progress_style`` value.
default_progress_theme
    Default Rich theme for progress bar colors.
"""

from abstractmcmc.progress_bar.callbacks import (
    AbstractCallback,
    DefaultCallback,
    NoCallback,
    ProgressStyle,
    check_progress_style,
    generate_callback,
)
from abstractmcmc.progress_bar.rich_progress import (
    CustomProgress,
    RichChainsProgress,
    RichDrawProgress,
    default_progress_theme,
)

__all__ = [
    "AbstractCallback",
    "CustomProgress",
    "DefaultCallback",
    "NoCallback",
    "ProgressStyle",
    "RichChainsProgress",
    "RichDrawProgress",
    "check_progress_style",
    "default_progress_theme",
    "generate_callback",
]
