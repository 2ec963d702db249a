"""
MU0 Label Table — pass 1 of the assembler.

Each label is bound to the address of the next word that will be
emitted. Label-definition lines don't occupy a word themselves.
Redefining a label is allowed; the last definition in the file wins.
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, Iterator, Optional, Tuple, Union

from .lexer import AsmLine, LineKind, parse_line

__all__ = ['LabelTable']

logger = logging.getLogger(__name__)


class LabelTable:
    """Label name -> resolved address.

    Usage:
        table = LabelTable.build(source.split('\\n'))
        addr = table.resolve('loop')   # None if undefined
    """

    def __init__(self):
        self._labels: Dict[str, int] = {}

    @classmethod
    def build(cls, source_lines: Iterable[Union[str, AsmLine]]) -> 'LabelTable':
        """Scan the source once, binding every label to its address.

        Accepts raw text lines or lines already classified by parse_line().
        Only lines that will actually emit a word advance the address, so
        malformed lines never shift later labels.
        """
        table = cls()
        address = 0
        for line_num, line in enumerate(source_lines, 1):
            if isinstance(line, str):
                line = parse_line(line, line_num)
            if line.kind == LineKind.LABEL:
                logger.debug('Found label definition "%s" at address %x',
                             line.label, address)
                table.define(line.label, address)
            elif line.emits_word:
                address += 1
        return table

    def define(self, name: str, address: int):
        if name in self._labels and self._labels[name] != address:
            logger.warning('Label "%s" redefined: %x -> %x',
                           name, self._labels[name], address)
        self._labels[name] = address

    def resolve(self, name: str) -> Optional[int]:
        """Exact-match lookup. Returns None when the label is undefined."""
        return self._labels.get(name)

    def items(self) -> Iterator[Tuple[str, int]]:
        return iter(self._labels.items())

    def __contains__(self, name: str) -> bool:
        return name in self._labels

    def __len__(self) -> int:
        return len(self._labels)

    def __repr__(self) -> str:
        return f"LabelTable({self._labels!r})"
