"""mapopt - posterior mode finding for log-density models."""

__version__ = "0.1.0"

from .io import (
    CallbackWriter,
    CsvOutputWriter,
    LoggerWriter,
    OutputWriter,
    RecordingWriter,
)
from .logging import configure_logging, get_logger, set_log_level
from .model import DomainError, EvalResult, FunctionModel, Model, TorchModel
from .optimize import (
    BFGSConfig,
    ConfigurationError,
    ErrorCode,
    LBFGSConfig,
    OptimizeConfig,
    optimize,
    optimize_from_settings,
    resolve_config,
)

__all__ = [
    "BFGSConfig",
    "CallbackWriter",
    "ConfigurationError",
    "CsvOutputWriter",
    "DomainError",
    "ErrorCode",
    "EvalResult",
    "FunctionModel",
    "LBFGSConfig",
    "LoggerWriter",
    "Model",
    "OptimizeConfig",
    "OutputWriter",
    "RecordingWriter",
    "TorchModel",
    "__version__",
    "configure_logging",
    "get_logger",
    "optimize",
    "optimize_from_settings",
    "resolve_config",
    "set_log_level",
]
