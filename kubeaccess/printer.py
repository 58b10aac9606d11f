"""
Tab-aligned text tables for access matrices.

Column layout follows the classic tabwriter rules the kubectl ecosystem uses
(minwidth 4, padding 2, space padding): every column except the last is
padded, the last one is written as-is. ANSI colour sequences take no width.
"""
import enum
import re
from typing import Callable, List, Optional, Sequence

from termcolor import colored

from .constants import OUTPUT_ASCII_TABLE, OUTPUT_ICON_TABLE, OUTPUT_LEFT_RIGHT

MIN_WIDTH = 4
PADDING = 2

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


class Outcome(enum.IntEnum):
    NONE = 0
    UP = 1
    DOWN = 2
    ERR = 3


class Row:
    def __init__(self, labels: Sequence[str], entries: Sequence[Outcome]):
        self.labels = list(labels)
        self.entries = list(entries)

    def __repr__(self):
        return f"Row({self.labels!r}, {[e.name for e in self.entries]!r})"


class Table:
    def __init__(self, headers: Sequence[str]):
        self.headers = list(headers)
        self.rows: List[Row] = []

    def add_row(self, labels: Sequence[str], *outcomes: Outcome) -> None:
        self.rows.append(Row(labels, outcomes))

    def render(self, out, output_format: str = OUTPUT_ICON_TABLE, color: Optional[bool] = None) -> None:
        if color is None:
            color = is_terminal(out)
        conv = converter_for(output_format, color)

        lines = [list(self.headers)]
        for row in self.rows:
            lines.append(row.labels + [conv(e) for e in row.entries])
        out.write(align(lines))


def is_terminal(out) -> bool:
    isatty = getattr(out, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except ValueError:
        # closed stream
        return False


def visible_len(s: str) -> int:
    return len(_ANSI_RE.sub("", s))


def align(lines: List[List[str]]) -> str:
    ncols = max((len(cells) for cells in lines), default=0)
    widths = []
    for col in range(ncols - 1):
        width = MIN_WIDTH
        for cells in lines:
            if col < len(cells) - 1:
                width = max(width, visible_len(cells[col]) + PADDING)
        widths.append(width)

    buf = []
    for cells in lines:
        parts = []
        for col, cell in enumerate(cells):
            if col == len(cells) - 1:
                parts.append(cell)
            else:
                parts.append(cell + " " * (widths[col] - visible_len(cell)))
        buf.append("".join(parts) + "\n")
    return "".join(buf)


# ----------------------------- Outcome converters -----------------------------
def icon_code(o: Outcome) -> str:
    if o == Outcome.UP:
        return "✔"
    if o == Outcome.DOWN:
        return "✖"
    if o == Outcome.NONE:
        return ""
    if o == Outcome.ERR:
        return "ERR"
    raise ValueError(f"unknown outcome {o!r}")


def ascii_code(o: Outcome) -> str:
    if o == Outcome.UP:
        return "yes"
    if o == Outcome.DOWN:
        return "no"
    if o == Outcome.NONE:
        return "n/a"
    if o == Outcome.ERR:
        return "ERR"
    raise ValueError(f"unknown outcome {o!r}")


def left_right_code(o: Outcome) -> str:
    if o == Outcome.UP:
        return "▶"
    if o == Outcome.DOWN:
        return "◀"
    if o == Outcome.NONE:
        return ""
    if o == Outcome.ERR:
        return "ERR"
    raise ValueError(f"unknown outcome {o!r}")


_COLORS = {
    Outcome.UP: "green",
    Outcome.DOWN: "red",
    Outcome.ERR: "magenta",
    Outcome.NONE: None,
}


def with_color(conv: Callable[[Outcome], str]) -> Callable[[Outcome], str]:
    def colored_code(o: Outcome) -> str:
        code = conv(o)
        color = _COLORS.get(o)
        if color is None:
            return code
        return colored(code, color, force_color=True)

    return colored_code


def converter_for(output_format: str, color: bool = False) -> Callable[[Outcome], str]:
    if output_format == OUTPUT_ASCII_TABLE:
        return ascii_code
    if output_format == OUTPUT_LEFT_RIGHT:
        conv = left_right_code
    elif output_format == OUTPUT_ICON_TABLE:
        conv = icon_code
    else:
        raise ValueError(f"unexpected output format: {output_format}")
    return with_color(conv) if color else conv
