"""mapfold: map, reduce and error-capturing adverbs for plain Python callables.

Public API:
    - map() and friends: element-wise application in strict index order
    - reduce() / accumulate(): left folds with an optional initial value
    - safely() / possibly(): turn raising functions into total ones
    - Result (Success | Failure): explicit error values
    - Config: behavior toggles (type checks, failure logging, retry policy)
"""

from __future__ import annotations

import logging

from mapfold.adverbs import (
    Captured,
    ProgressCounter,
    insistently,
    possibly,
    quietly,
    safely,
    with_progress,
)
from mapfold.config import Config, get_config, set_config, using
from mapfold.errors import (
    ConfigurationError,
    ElementFailure,
    EmptyReductionError,
    LengthMismatchError,
    MapfoldError,
    TypeMismatchError,
)
from mapfold.mapper import (
    imap,
    map,  # noqa: A004
    map2,
    map_as,
    map_bool,
    map_float,
    map_int,
    map_str,
    pmap,
    walk,
)
from mapfold.reducer import accumulate, reduce
from mapfold.result import ErrorInfo, Failure, Result, Success, transpose_results
from mapfold.retry import RetryPolicy

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("mapfold")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("mapfold").addHandler(logging.NullHandler())

__all__ = [
    "Captured",
    "Config",
    "ConfigurationError",
    "ElementFailure",
    "EmptyReductionError",
    "ErrorInfo",
    "Failure",
    "LengthMismatchError",
    "MapfoldError",
    "ProgressCounter",
    "Result",
    "RetryPolicy",
    "Success",
    "TypeMismatchError",
    "accumulate",
    "get_config",
    "imap",
    "insistently",
    "map",
    "map2",
    "map_as",
    "map_bool",
    "map_float",
    "map_int",
    "map_str",
    "pmap",
    "possibly",
    "quietly",
    "reduce",
    "safely",
    "set_config",
    "transpose_results",
    "using",
    "walk",
    "with_progress",
]
