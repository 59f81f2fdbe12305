"""Writers for optimizer progress and output."""

from .writers import (
    CallbackWriter,
    CsvOutputWriter,
    LoggerWriter,
    MessageWriter,
    OutputWriter,
    RecordingWriter,
    write_error_msg,
    write_iteration,
)

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
