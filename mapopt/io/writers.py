"""Sinks for progress messages, errors, and iteration output.

Info and error sinks are plain callables taking one line of text. The
output sink receives a header once and then rows of numbers, one per
saved iterate.
"""

from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, TextIO

import numpy as np

from mapopt.model.base import Array, Model

MessageWriter = Callable[[str], None]


class OutputWriter(ABC):
    """Destination for the header and per-iteration rows."""

    @abstractmethod
    def write_header(self, names: Sequence[str]) -> None:
        """Write the column names. Called once per run."""

    @abstractmethod
    def write_row(self, values: Sequence[float]) -> None:
        """Write one row of values matching the header."""


class RecordingWriter(OutputWriter):
    """
    In-memory sink that records everything it is given.

    Usable as an output writer and, through :meth:`info` and :meth:`error`,
    as message sinks. Events are also kept in arrival order in ``events``
    so interleaving can be inspected.
    """

    def __init__(self) -> None:
        self.header: Optional[List[str]] = None
        self.header_count = 0
        self.rows: List[List[float]] = []
        self.messages: List[str] = []
        self.errors: List[str] = []
        self.events: List[tuple[str, object]] = []

    def write_header(self, names: Sequence[str]) -> None:
        self.header = list(names)
        self.header_count += 1
        self.events.append(("header", self.header))

    def write_row(self, values: Sequence[float]) -> None:
        row = [float(v) for v in values]
        self.rows.append(row)
        self.events.append(("row", row))

    def info(self, message: str) -> None:
        self.messages.append(message)
        self.events.append(("info", message))

    def error(self, message: str) -> None:
        self.errors.append(message)
        self.events.append(("error", message))


class CsvOutputWriter(OutputWriter):
    """Stream the header and rows as CSV to an open text stream."""

    def __init__(self, stream: TextIO, comment_prefix: str = "# ") -> None:
        self._stream = stream
        self._writer = csv.writer(stream, lineterminator="\n")
        self._comment_prefix = comment_prefix

    def write_header(self, names: Sequence[str]) -> None:
        self._writer.writerow(list(names))

    def write_row(self, values: Sequence[float]) -> None:
        self._writer.writerow([repr(float(v)) for v in values])

    def comment(self, message: str) -> None:
        """Write a message as a comment line; usable as an info sink."""
        for line in message.splitlines() or [""]:
            self._stream.write(f"{self._comment_prefix}{line}\n")


class CallbackWriter(OutputWriter):
    """Adapter turning two callables into an :class:`OutputWriter`."""

    def __init__(
        self,
        on_header: Callable[[List[str]], None],
        on_row: Callable[[List[float]], None],
    ) -> None:
        self._on_header = on_header
        self._on_row = on_row

    def write_header(self, names: Sequence[str]) -> None:
        self._on_header(list(names))

    def write_row(self, values: Sequence[float]) -> None:
        self._on_row([float(v) for v in values])


class LoggerWriter:
    """Message sink forwarding each line to a logger at a fixed level."""

    def __init__(self, logger: logging.Logger, level: int = logging.INFO) -> None:
        self.logger = logger
        self.level = level

    def __call__(self, message: str) -> None:
        self.logger.log(self.level, message)


def write_error_msg(err: MessageWriter, error: BaseException | str) -> None:
    """Report a failed model evaluation as a single line on ``err``."""
    if isinstance(error, BaseException):
        error = f"{type(error).__name__}: {error}"
    err(f"Error evaluating model log probability: {error}")


def write_iteration(
    output: OutputWriter,
    model: Model,
    rng: Optional[np.random.Generator],
    lp: float,
    params: Array,
) -> None:
    """Write ``lp`` followed by the model's output values at ``params``."""
    values = model.write_array(rng, params)
    output.write_row([lp, *np.asarray(values, dtype=float).tolist()])


__all__ = [
    "CallbackWriter",
    "CsvOutputWriter",
    "LoggerWriter",
    "MessageWriter",
    "OutputWriter",
    "RecordingWriter",
    "write_error_msg",
    "write_iteration",
]
