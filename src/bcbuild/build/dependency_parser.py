"""Parser for compiler dependency listings.

`clang -M file.cpp` prints a Make rule naming every file the translation unit
reads:

    file.o: /abs/src/file.cpp /abs/include/a\\ b.h \\
      /abs/include/c.h

The target is the source stem with a ".o" suffix. Prerequisites are separated
by whitespace; a backslash escapes the character after it, and a backslash
followed by whitespace (the line continuation) is itself a separator.

Escaping is permissive: a backslash before *any* character drops the
backslash and keeps the character, not only before the few characters Make
itself recognizes.
"""

from pathlib import Path
from typing import Union

from ..errors import MalformedDependencyOutput

_SPACES = frozenset(" \t\r\n")
_ESCAPE = "\\"


class MakefileDependencyParser:
    """Cursor over the text of one dependency listing.

    Args:
        text: Raw compiler output
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    @property
    def eof(self) -> bool:
        return self.pos >= len(self.text)

    def _is_space(self, pos: int) -> bool:
        return self.text[pos] in _SPACES

    def _is_escape(self, pos: int) -> bool:
        return self.text[pos] == _ESCAPE

    def skip_prefix(self, prefix: str) -> None:
        """Consume a literal prefix.

        Raises:
            ValueError: If the text at the cursor is not exactly the prefix
        """
        if self.text[self.pos : self.pos + len(prefix)] != prefix:
            raise ValueError(f"Expected '{prefix}' at offset {self.pos}")
        self.pos += len(prefix)

    def skip_spaces(self) -> None:
        """Skip whitespace, including backslash-whitespace pairs."""
        while not self.eof:
            if self._is_space(self.pos):
                self.pos += 1
            elif self._is_escape(self.pos) and self.pos + 1 < len(self.text) and self._is_space(self.pos + 1):
                self.pos += 1
            else:
                break

    def read_file_name(self) -> str:
        """Read one prerequisite, resolving backslash escapes."""
        chars = []
        while not self.eof and not self._is_space(self.pos):
            if self._is_escape(self.pos):
                self.pos += 1
                if self.eof:
                    # Trailing backslash with nothing after it is kept verbatim
                    chars.append(_ESCAPE)
                    break
            chars.append(self.text[self.pos])
            self.pos += 1
        return "".join(chars)


def parse_dependency_output(text: str, source_path: Union[str, Path]) -> list[str]:
    """Extract the header list from a `-M` dependency listing.

    Args:
        text: Raw compiler output
        source_path: Absolute path of the source the listing was produced for

    Returns:
        Header paths in listing order, without the source itself

    Raises:
        MalformedDependencyOutput: If the listing does not start with "<stem>.o:"
    """
    source = str(source_path)
    parser = MakefileDependencyParser(text)
    prefix = f"{Path(source).stem}.o:"
    try:
        parser.skip_prefix(prefix)
    except ValueError as e:
        raise MalformedDependencyOutput(f"Invalid dependency output for {source}: expected it to start with '{prefix}'", source, text) from e

    headers = []
    parser.skip_spaces()
    while not parser.eof:
        filename = parser.read_file_name()
        if filename and filename != source:
            headers.append(filename)
        parser.skip_spaces()
    return headers
