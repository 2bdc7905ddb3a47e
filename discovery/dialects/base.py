"""Shared interface for the test-authoring dialect parsers."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from discovery.models import TestDefinition
from discovery.parser import ParsedSource

logger = logging.getLogger(__name__)


class DialectParser(ABC):
    """Extracts test definitions for one authoring convention.

    ``parse`` returns None when the source holds nothing this dialect
    recognizes, letting the engine fall through to the next dialect.
    """

    name: str = "dialect"

    def __init__(self) -> None:
        self.root = ""

    def set_root(self, root: str) -> None:
        """Set the project test root used to resolve file-relative names."""
        self.root = root or ""

    @abstractmethod
    def parse(self, source: ParsedSource, file: str) -> Optional[List[TestDefinition]]:
        ...
