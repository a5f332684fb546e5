"""Download images referenced by URL and embed them over worksheet cells."""

import io
import logging
from dataclasses import dataclass
from typing import Optional, Union

import requests
from openpyxl.cell.cell import Cell
from openpyxl.drawing.image import Image as ExcelImage
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from PIL import Image as PILImage

from .placeholders import image_format_from_url

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
HYPERLINK_COLOR = "FF0000FF"


@dataclass(frozen=True)
class ImageSettings:
    """Download and layout settings for embedded images."""

    timeout_seconds: float = 30
    user_agent: str = DEFAULT_USER_AGENT
    row_height: float = 80
    column_width: float = 15
    image_width: int = 70
    image_height: int = 105


@dataclass(frozen=True)
class ImageEmbedSuccess:
    url: str
    row: int
    column: int
    image_format: str
    width: int
    height: int

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ImageFetchError:
    url: str
    row: int
    column: int
    reason: str

    @property
    def ok(self) -> bool:
        return False


ImageEmbedResult = Union[ImageEmbedSuccess, ImageFetchError]


class ImageEmbedder:
    """Fetches an image over HTTP and anchors it at a worksheet cell.

    The embedder never touches the target cell's value; callers render the
    returned result with :func:`render_image_result` or their own policy.
    """

    def __init__(self, settings: Optional[ImageSettings] = None) -> None:
        self.settings = settings or ImageSettings()

    def download(self, url: str) -> bytes:
        """Download image bytes, raising for timeouts and non-2xx responses."""
        response = requests.get(
            url,
            timeout=self.settings.timeout_seconds,
            headers={"User-Agent": self.settings.user_agent},
        )
        response.raise_for_status()
        return response.content

    def embed(
        self, worksheet: Worksheet, row: int, column: int, url: str
    ) -> ImageEmbedResult:
        """Embed the image at ``url`` over the cell at ``(row, column)``."""
        image_format = image_format_from_url(url)
        try:
            content = self.download(url)
            excel_img = self._build_image(content, image_format)
        except requests.RequestException as e:
            logger.warning(f"Image download failed: {url} ({e})")
            return ImageFetchError(url=url, row=row, column=column, reason=str(e))
        # PIL reports bad chunk checksums as SyntaxError
        except (
            OSError,
            ValueError,
            SyntaxError,
            PILImage.DecompressionBombError,
        ) as e:
            logger.warning(f"Downloaded content is not a readable image: {url} ({e})")
            return ImageFetchError(url=url, row=row, column=column, reason=str(e))

        col_letter = get_column_letter(column)

        # Fixed layout; a later image in the same row or column overrides it
        worksheet.row_dimensions[row].height = self.settings.row_height
        worksheet.column_dimensions[col_letter].width = self.settings.column_width

        excel_img.anchor = f"{col_letter}{row}"
        worksheet.add_image(excel_img)

        logger.info(f"Inserted image at {col_letter}{row}: {url}")
        return ImageEmbedSuccess(
            url=url,
            row=row,
            column=column,
            image_format=image_format,
            width=excel_img.width,
            height=excel_img.height,
        )

    def _build_image(self, content: bytes, image_format: str) -> ExcelImage:
        # Verify first so broken downloads fail here rather than on save
        with PILImage.open(io.BytesIO(content)) as probe:
            probe.verify()

        excel_img = ExcelImage(io.BytesIO(content))
        excel_img.format = image_format
        excel_img.width = self.settings.image_width
        excel_img.height = self.settings.image_height
        return excel_img


def hyperlink_font(base: Optional[Font] = None) -> Font:
    """Blue underlined font keeping the base font face and size."""
    if base is None:
        return Font(color=HYPERLINK_COLOR, underline="single")
    return Font(
        name=base.name,
        size=base.size,
        bold=base.bold,
        italic=base.italic,
        color=HYPERLINK_COLOR,
        underline="single",
    )


def render_image_fallback(cell: Cell, url: str) -> None:
    """Show the raw URL as a hyperlink-styled cell."""
    cell.value = url
    cell.hyperlink = url
    cell.font = hyperlink_font(cell.font)


def render_image_result(cell: Cell, result: ImageEmbedResult) -> None:
    """Clear the cell under an embedded image, or fall back to link text."""
    if result.ok:
        cell.value = None
    else:
        render_image_fallback(cell, result.url)
