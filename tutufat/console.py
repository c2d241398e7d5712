"""Text-mode console with a small printf-style formatter."""

from __future__ import annotations

from enum import Enum, auto
from typing import Iterator

HEX_CHARS = "0123456789abcdef"
SCREEN_WIDTH = 80
SCREEN_HEIGHT = 25
DEFAULT_COLOR = 0x07


def format_unsigned(number: int, radix: int) -> str:
    """Render a non-negative integer in the given radix with lowercase digits."""
    if not 2 <= radix <= len(HEX_CHARS):
        raise ValueError(f"unsupported radix {radix}")
    if number < 0:
        raise ValueError("number must not be negative")
    digits = []
    while True:
        number, rem = divmod(number, radix)
        digits.append(HEX_CHARS[rem])
        if number == 0:
            break
    return "".join(reversed(digits))


def format_signed(number: int, radix: int) -> str:
    """Render an integer in the given radix, with a leading '-' when negative."""
    if number < 0:
        return "-" + format_unsigned(-number, radix)
    return format_unsigned(number, radix)


class _State(Enum):
    NORMAL = auto()
    LENGTH = auto()
    LENGTH_SHORT = auto()
    LENGTH_LONG = auto()
    SPEC = auto()


class _Length(Enum):
    DEFAULT = auto()
    SHORT_SHORT = auto()
    SHORT = auto()
    LONG = auto()
    LONG_LONG = auto()


_NUMBER_SPECS = {
    "d": (10, True),
    "i": (10, True),
    "u": (10, False),
    "X": (16, False),
    "x": (16, False),
    "p": (16, False),
    "o": (8, False),
}


def _next_arg(values: Iterator[object]) -> object:
    try:
        return next(values)
    except StopIteration:
        raise TypeError("not enough arguments for format string") from None


def _as_char(value: object) -> str:
    if isinstance(value, str):
        if len(value) != 1:
            raise ValueError("%c expects a single character")
        return value
    return chr(int(value) & 0xFF)


def _convert(spec: str, length: _Length, values: Iterator[object]) -> str:
    if spec == "c":
        return _as_char(_next_arg(values))
    if spec == "s":
        return str(_next_arg(values))
    if spec == "%":
        return "%"
    if spec not in _NUMBER_SPECS:
        return ""
    radix, signed = _NUMBER_SPECS[spec]
    bits = 64 if length is _Length.LONG_LONG else 32
    value = int(_next_arg(values)) & ((1 << bits) - 1)
    if signed:
        if value >= 1 << (bits - 1):
            value -= 1 << bits
        return format_signed(value, radix)
    return format_unsigned(value, radix)


def sprintf(fmt: str, *args: object) -> str:
    """Format like the console printf: %c %s %% %d %i %u %x %X %p %o with h/hh/l/ll.

    Unknown conversions are dropped silently; hex digits are always lowercase.
    """
    out: list[str] = []
    values = iter(args)
    state = _State.NORMAL
    length = _Length.DEFAULT
    for ch in fmt:
        if state is _State.NORMAL:
            if ch == "%":
                state = _State.LENGTH
            else:
                out.append(ch)
            continue
        if state is _State.LENGTH and ch == "h":
            length, state = _Length.SHORT, _State.LENGTH_SHORT
            continue
        if state is _State.LENGTH and ch == "l":
            length, state = _Length.LONG, _State.LENGTH_LONG
            continue
        if state is _State.LENGTH_SHORT and ch == "h":
            length, state = _Length.SHORT_SHORT, _State.SPEC
            continue
        if state is _State.LENGTH_LONG and ch == "l":
            length, state = _Length.LONG_LONG, _State.SPEC
            continue
        out.append(_convert(ch, length, values))
        state = _State.NORMAL
        length = _Length.DEFAULT
    return "".join(out)


class Screen:
    """A character cell screen with a cursor, line wrap and scrolling."""

    def __init__(
        self,
        width: int = SCREEN_WIDTH,
        height: int = SCREEN_HEIGHT,
        color: int = DEFAULT_COLOR,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("screen dimensions must be positive")
        self.width = width
        self.height = height
        self.default_color = color
        self._chars = ["\0"] * (width * height)
        self._colors = [color] * (width * height)
        self.x = 0
        self.y = 0

    @property
    def cursor(self) -> tuple[int, int]:
        return self.x, self.y

    def _index(self, x: int, y: int) -> int:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"cell ({x}, {y}) is off screen")
        return y * self.width + x

    def char_at(self, x: int, y: int) -> str:
        return self._chars[self._index(x, y)]

    def color_at(self, x: int, y: int) -> int:
        return self._colors[self._index(x, y)]

    def clrscr(self) -> None:
        """Blank every cell with the default color and home the cursor."""
        self._chars = ["\0"] * (self.width * self.height)
        self._colors = [self.default_color] * (self.width * self.height)
        self.x = 0
        self.y = 0

    def scrollback(self, lines: int) -> None:
        """Move the contents up by ``lines`` rows, blanking the rows freed at the bottom."""
        if not 0 <= lines <= self.height:
            raise ValueError(f"cannot scroll by {lines} lines")
        shift = lines * self.width
        blank = self.width * lines
        self._chars = self._chars[shift:] + ["\0"] * blank
        self._colors = self._colors[shift:] + [self.default_color] * blank
        self.y -= lines

    def putc(self, c: str) -> None:
        """Write one character at the cursor, handling newline, tab and carriage return."""
        if len(c) != 1:
            raise ValueError("putc expects a single character")
        if c == "\n":
            self.x = 0
            self.y += 1
        elif c == "\t":
            count = 0
            while count < 4 - (self.x % 4):
                self.putc(" ")
                count += 1
        elif c == "\r":
            self.x = 0
        else:
            self._chars[self._index(self.x, self.y)] = c
            self.x += 1

        if self.x >= self.width:
            self.y += 1
            self.x = 0
        if self.y >= self.height:
            self.scrollback(1)

    def puts(self, text: str) -> None:
        for ch in text:
            self.putc(ch)

    def printf(self, fmt: str, *args: object) -> None:
        self.puts(sprintf(fmt, *args))

    def print_buffer(self, msg: str, data: bytes) -> None:
        """Write ``msg`` followed by ``data`` as lowercase hex and a newline."""
        self.puts(msg)
        self.puts(bytes(data).hex())
        self.puts("\n")

    def lines(self) -> list[str]:
        """Return each row as text, trailing blank cells removed and inner blanks as spaces."""
        rows = []
        for start in range(0, self.width * self.height, self.width):
            row = "".join(self._chars[start:start + self.width]).rstrip("\0")
            rows.append(row.replace("\0", " "))
        return rows