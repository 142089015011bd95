"""polyface: one operation description, many API surfaces."""

from polyface.domain.context import Context
from polyface.domain.markers import param, response, route, skip
from polyface.domain.results import Err, Ok
from polyface.services.analysis import describe_service
from polyface.services.errors import error_kind

__version__ = "0.4.0"

__all__ = [
    "Context",
    "Err",
    "Ok",
    "__version__",
    "describe_service",
    "error_kind",
    "param",
    "response",
    "route",
    "skip",
]
