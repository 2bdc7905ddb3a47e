"""Dialect parsers, in the priority order the engine tries them."""

from discovery.dialects.base import DialectParser
from discovery.dialects.phpunit import PHPUnitParser
from discovery.dialects.pest import PestParser

__all__ = [
    "DialectParser",
    "PHPUnitParser",
    "PestParser",
]
