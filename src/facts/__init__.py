from .collection import FactCollection
from .fact import AggregateResolution, Confine, Fact, Resolution, SimpleResolution
from .parsers import ExternalFactError, ParserNotFoundError, parse_file, which_parser

__all__ = [
    "FactCollection",
    "Fact",
    "Resolution",
    "SimpleResolution",
    "AggregateResolution",
    "Confine",
    "parse_file",
    "which_parser",
    "ParserNotFoundError",
    "ExternalFactError",
]
