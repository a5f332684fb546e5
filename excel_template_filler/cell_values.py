"""Tagged cell value variants and conversions to and from openpyxl values."""

from copy import copy
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont
from openpyxl.styles import Font

_FONT_ATTRIBUTES = (
    "charset",
    "family",
    "b",
    "i",
    "strike",
    "outline",
    "shadow",
    "condense",
    "extend",
    "sz",
    "u",
    "vertAlign",
    "scheme",
)


@dataclass(frozen=True)
class Run:
    """A span of rich text sharing one font. ``font`` None means the cell font."""

    text: str
    font: Optional[InlineFont] = None


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class RichText:
    runs: Tuple[Run, ...]

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class OtherValue:
    """Numbers, dates, formulas results and empty cells."""

    value: Any


CellValue = Union[PlainText, RichText, OtherValue]


def read_cell_value(value: Any) -> CellValue:
    """Classify a raw openpyxl cell value."""
    if isinstance(value, CellRichText):
        runs = []
        for part in value:
            if isinstance(part, TextBlock):
                runs.append(Run(text=part.text or "", font=part.font))
            else:
                runs.append(Run(text=str(part)))
        return RichText(runs=tuple(runs))
    if isinstance(value, str):
        return PlainText(text=value)
    return OtherValue(value=value)


def to_openpyxl_value(cell_value: CellValue) -> Any:
    """Convert a tagged value back into something openpyxl can store."""
    if isinstance(cell_value, PlainText):
        return cell_value.text
    if isinstance(cell_value, RichText):
        parts = []
        for run in cell_value.runs:
            if not run.text:
                continue
            if run.font is None:
                parts.append(run.text)
            else:
                parts.append(TextBlock(run.font, run.text))
        return CellRichText(parts) if parts else ""
    return cell_value.value


def text_of(cell_value: CellValue) -> Optional[str]:
    """Plain text of a text-bearing value, None for anything else."""
    if isinstance(cell_value, (PlainText, RichText)):
        return cell_value.text
    return None


def inline_font_from_font(font: Optional[Font]) -> InlineFont:
    """Build a rich-text run font carrying the same attributes as a cell font."""
    if font is None:
        return InlineFont()
    kwargs = {name: getattr(font, name, None) for name in _FONT_ATTRIBUTES}
    kwargs["rFont"] = getattr(font, "name", None) or getattr(font, "rFont", None)
    color = getattr(font, "color", None)
    kwargs["color"] = copy(color) if color is not None else None
    return InlineFont(**kwargs)


def without_bold(font: Optional[Union[InlineFont, Font]]) -> InlineFont:
    """Copy of ``font`` with only boldness switched off."""
    if isinstance(font, InlineFont):
        kwargs = {name: getattr(font, name, None) for name in _FONT_ATTRIBUTES}
        kwargs["rFont"] = font.rFont
        kwargs["color"] = copy(font.color) if font.color is not None else None
        result = InlineFont(**kwargs)
    else:
        result = inline_font_from_font(font)
    result.b = False
    return result
