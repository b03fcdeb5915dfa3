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

from collections.abc import Iterable

from rich.box import SIMPLE_HEAD
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    Task,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Column, Table
from rich.theme import Theme

default_progress_theme = Theme(
    {
        "bar.complete": "#1764f4",
        "bar.finished": "#1764f4",
        "progress.remaining": "none",
        "progress.elapsed": "none",
    }
)
"""Default Rich theme for progress bar colors."""


class CustomProgress(Progress):
    def __init__(self, *args, include_headers: bool = False, **kwargs):
        self.include_headers = include_headers
        super().__init__(*args, **kwargs)

    def make_tasks_table(self, tasks: Iterable[Task]) -> Table:
        """Get a table to render the Progress display.

        Unlike the parent method, this returns a full table (not a grid),
        allowing for column headings.

        Parameters
        ----------
        tasks : Iterable[Task]
            An iterable of Task instances, one per row of the table.

        Returns
        -------
        Table
            A table instance.
        """
        table_columns = (
            (
                Column(no_wrap=True)
                if isinstance(_column, str)
                else _column.get_table_column().copy()
            )
            for _column in self.columns
        )
        if self.include_headers:
            table = Table(
                *table_columns,
                padding=(0, 1),
                expand=self.expand,
                show_header=True,
                show_edge=True,
                box=SIMPLE_HEAD,
            )
        else:
            table = Table.grid(*table_columns, padding=(0, 1), expand=self.expand)

        for task in tasks:
            if task.visible:
                table.add_row(
                    *(
                        column.format(task=task) if isinstance(column, str) else column(task)
                        for column in self.columns
                    )
                )

        return table


def RichDrawProgress(theme: Theme | None = None, disable: bool = False) -> CustomProgress:
    """Plain single-chain display: bar, percentage, sampling speed and timings."""
    return CustomProgress(
        "[progress.description]{task.description}",
        BarColumn(),
        "[progress.percentage]{task.percentage:>3.0f}%",
        TextColumn("{task.fields[sampling_speed]:0.2f} {task.fields[speed_unit]}"),
        TimeRemainingColumn(),
        TextColumn("/"),
        TimeElapsedColumn(),
        console=Console(theme=default_progress_theme if theme is None else theme),
        disable=disable,
    )


def RichChainsProgress(theme: Theme | None = None, disable: bool = False) -> CustomProgress:
    """Display counting finished chains of a parallel run."""
    return CustomProgress(
        BarColumn(table_column=Column("Progress", ratio=2)),
        TextColumn(
            "{task.completed:.0f}/{task.total:.0f}", table_column=Column("Chains", ratio=1)
        ),
        TimeElapsedColumn(table_column=Column("Elapsed", ratio=1)),
        TimeRemainingColumn(table_column=Column("Remaining", ratio=1)),
        console=Console(theme=default_progress_theme if theme is None else theme),
        include_headers=True,
        disable=disable,
    )
