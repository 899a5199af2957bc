"""
PDF watermark utility: оверлеи страниц через pypdf.

Каждый элемент (диагональный текст, логотип, подпись «Downloaded by»,
страница «превью закончилось») рисуется на отдельной одностраничной PDF
того же размера и накладывается merge_page. Так элементы независимы:
сбой одного не мешает остальным.
"""
import io
import logging
import math
import zlib
from dataclasses import dataclass, field

from PIL import Image
from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from pypdf.generic import (
    DecodedStreamObject,
    DictionaryObject,
    FloatObject,
    NameObject,
    NumberObject,
    RectangleObject,
)

from studymint.core.errors import PipelineDegraded

logger = logging.getLogger(__name__)

# Средняя ширина глифа Helvetica в долях кегля: центрируем без метрик шрифта
_AVG_GLYPH_WIDTH = 0.55
_BRAND_MAX_PX = 512

_FONT_BOLD = "/F1"
_FONT_REGULAR = "/F2"


@dataclass(frozen=True)
class BrandImage:
    """Логотип, подготовленный для PDF: RGB и альфа-канал, уже сжатые zlib."""

    width: int
    height: int
    rgb: bytes
    alpha: bytes | None = None


@dataclass(frozen=True)
class PageBox:
    left: float
    bottom: float
    width: float
    height: float

    @classmethod
    def of(cls, page: PageObject) -> "PageBox":
        box = page.mediabox
        return cls(float(box.left), float(box.bottom), float(box.width), float(box.height))

    @property
    def center(self) -> tuple[float, float]:
        return self.left + self.width / 2, self.bottom + self.height / 2


@dataclass
class PdfOutput:
    content: bytes
    pages_total: int
    pages_out: int
    degraded: list[str] = field(default_factory=list)


def load_brand_image(path: str | None) -> BrandImage:
    """Загрузить логотип. PipelineDegraded, если путь пуст или файл не читается."""
    if not path:
        raise PipelineDegraded("brand image is not configured")
    try:
        with Image.open(path) as src:
            img = src.convert("RGBA")
    except OSError as exc:  # включая FileNotFoundError и UnidentifiedImageError
        raise PipelineDegraded(f"brand image unreadable: {path}") from exc

    img.thumbnail((_BRAND_MAX_PX, _BRAND_MAX_PX))
    alpha_channel = img.getchannel("A")
    alpha = None
    if alpha_channel.getextrema()[0] < 255:
        alpha = zlib.compress(alpha_channel.tobytes())
    return BrandImage(
        width=img.width,
        height=img.height,
        rgb=zlib.compress(img.convert("RGB").tobytes()),
        alpha=alpha,
    )


def read_pdf(data: bytes) -> PdfReader:
    """PdfReader; битый или зашифрованный файл -> PdfReadError."""
    try:
        reader = PdfReader(io.BytesIO(data))
        encrypted = reader.is_encrypted
        pages = len(reader.pages)
    except PdfReadError:
        raise
    except Exception as exc:  # pypdf на мусоре бросает что угодно: KeyError, ValueError, ...
        raise PdfReadError(f"unparseable PDF: {exc}") from exc
    if encrypted:
        raise PdfReadError("encrypted PDF")
    if pages == 0:
        raise PdfReadError("PDF has no pages")
    return reader


def build_preview(
    data: bytes,
    *,
    page_limit: int,
    watermark_text: str,
    text_opacity: float,
    brand: BrandImage | None,
    brand_opacity: float,
    cta_title: str,
    cta_lines: list[str],
) -> PdfOutput:
    """
    Первые page_limit страниц с диагональным водяным знаком (текст и, если есть,
    логотип). Если страниц больше лимита, в конец добавляется страница без
    водяного знака с cta_title / cta_lines; в строках доступны {total} и {shown}.
    """
    reader = read_pdf(data)
    total = len(reader.pages)
    writer = PdfWriter()
    degraded: list[str] = []

    for index in range(min(page_limit, total)):
        page = writer.add_page(reader.pages[index])
        box = PageBox.of(page)
        page.merge_page(render_diagonal_text(box, watermark_text, text_opacity))
        if brand is not None:
            try:
                page.merge_page(render_diagonal_image(box, brand, brand_opacity))
            except Exception:
                logger.exception("watermark_brand_failed", extra={"pages_out": index})
                degraded.append("preview_brand")

    if total > page_limit:
        box = PageBox.of(writer.pages[len(writer.pages) - 1]) if len(writer.pages) else PageBox(0, 0, 612, 792)
        shown = len(writer.pages)
        lines = [line.format(total=total, shown=shown) for line in cta_lines]
        writer.add_page(render_call_to_action(box, cta_title, lines))

    return PdfOutput(
        content=_write(writer),
        pages_total=total,
        pages_out=len(writer.pages),
        degraded=degraded,
    )


def stamp_full(
    data: bytes,
    *,
    caption: str,
    caption_opacity: float,
    brand: BrandImage | None,
    brand_opacity: float,
) -> PdfOutput:
    """
    Все страницы с подписью caption внизу слева и (если есть) логотипом по центру.
    Оба элемента best-effort: сбой логируется, страница остаётся без него.
    """
    reader = read_pdf(data)
    writer = PdfWriter(clone_from=reader)
    degraded: list[str] = []
    overlays: dict[tuple[str, PageBox], PageObject] = {}

    def overlay(kind: str, box: PageBox) -> PageObject:
        key = (kind, box)
        if key not in overlays:
            if kind == "caption":
                overlays[key] = render_caption(box, caption, caption_opacity)
            else:
                overlays[key] = render_diagonal_image(box, brand, brand_opacity)
        return overlays[key]

    kinds = ["caption"] if brand is None else ["caption", "brand"]
    for index, page in enumerate(writer.pages):
        box = PageBox.of(page)
        for kind in kinds:
            try:
                page.merge_page(overlay(kind, box))
            except Exception:
                logger.exception("watermark_stamp_failed", extra={"operation": kind, "pages_out": index})
                if kind not in degraded:
                    degraded.append(kind)

    return PdfOutput(
        content=_write(writer),
        pages_total=len(reader.pages),
        pages_out=len(writer.pages),
        degraded=degraded,
    )


# ----------------------------------------------------------------------
# Overlays
# ----------------------------------------------------------------------


def render_diagonal_text(box: PageBox, text: str, opacity: float) -> PageObject:
    """Текст по диагонали страницы через центр; кегль подгоняется под ~60% диагонали."""
    builder = _OverlayBuilder(box)
    diag = math.hypot(box.width, box.height)
    angle = math.atan2(box.height, box.width)
    size = min(72.0, max(14.0, diag * 0.6 / (max(len(text), 1) * _AVG_GLYPH_WIDTH)))
    text_width = len(text) * size * _AVG_GLYPH_WIDTH
    cos, sin = math.cos(angle), math.sin(angle)
    cx, cy = box.center
    # сдвигаем начало строки так, чтобы её середина попала в центр страницы
    tx = cx - (text_width / 2) * cos + (size * 0.35) * sin
    ty = cy - (text_width / 2) * sin - (size * 0.35) * cos
    gs = builder.alpha_state(opacity)
    font = builder.font(_FONT_BOLD)
    builder.ops.append(
        f"q {gs} gs 0.5 g BT {font} {_num(size)} Tf "
        f"{_num(cos)} {_num(sin)} {_num(-sin)} {_num(cos)} {_num(tx)} {_num(ty)} Tm ".encode()
        + _pdf_string(text)
        + b" Tj ET Q"
    )
    return builder.render()


def render_diagonal_image(box: PageBox, brand: BrandImage, opacity: float) -> PageObject:
    """Логотип по центру, повёрнут по диагонали, ширина: половина меньшей стороны."""
    builder = _OverlayBuilder(box)
    name = builder.image(brand)
    gs = builder.alpha_state(opacity)
    angle = math.atan2(box.height, box.width)
    cos, sin = math.cos(angle), math.sin(angle)
    cx, cy = box.center
    width = min(box.width, box.height) * 0.5
    height = width * brand.height / brand.width
    builder.ops.append(
        f"q {gs} gs {_num(cos)} {_num(sin)} {_num(-sin)} {_num(cos)} {_num(cx)} {_num(cy)} cm "
        f"{_num(width)} 0 0 {_num(height)} {_num(-width / 2)} {_num(-height / 2)} cm {name} Do Q".encode()
    )
    return builder.render()


def render_caption(box: PageBox, text: str, opacity: float, size: float = 8.0, margin: float = 18.0) -> PageObject:
    """Мелкая серая подпись в левом нижнем углу."""
    builder = _OverlayBuilder(box)
    gs = builder.alpha_state(opacity)
    font = builder.font(_FONT_REGULAR)
    builder.ops.append(
        f"q {gs} gs 0.45 g BT {font} {_num(size)} Tf "
        f"{_num(box.left + margin)} {_num(box.bottom + margin)} Td ".encode()
        + _pdf_string(text)
        + b" Tj ET Q"
    )
    return builder.render()


def render_call_to_action(box: PageBox, title: str, lines: list[str]) -> PageObject:
    """Отдельная страница: крупный заголовок и строки по центру. Без водяного знака."""
    builder = _OverlayBuilder(box)
    cx, cy = box.center
    title_size = 28.0
    line_size = 14.0
    y = cy + title_size
    builder.ops.append(_centered_line(builder.font(_FONT_BOLD), title, title_size, cx, y))
    y -= title_size * 1.6
    regular = builder.font(_FONT_REGULAR)
    for line in lines:
        builder.ops.append(_centered_line(regular, line, line_size, cx, y))
        y -= line_size * 1.6
    return builder.render()


class _OverlayBuilder:
    """Одностраничная PDF размера box: content stream + ресурсы (шрифты, прозрачность, картинки)."""

    _BASE_FONTS = {_FONT_BOLD: "/Helvetica-Bold", _FONT_REGULAR: "/Helvetica"}

    def __init__(self, box: PageBox):
        self.writer = PdfWriter()
        self.page = self.writer.add_blank_page(width=box.width, height=box.height)
        self.page.mediabox = RectangleObject(
            [box.left, box.bottom, box.left + box.width, box.bottom + box.height]
        )
        self.ops: list[bytes] = []
        self._fonts = DictionaryObject()
        self._states = DictionaryObject()
        self._xobjects = DictionaryObject()

    def _indirect(self, obj):
        # единственное место с приватным API pypdf; диапазон версий зафиксирован в pyproject.toml
        return self.writer._add_object(obj)

    def font(self, name: str) -> str:
        key = NameObject(name)
        if key not in self._fonts:
            self._fonts[key] = DictionaryObject({
                NameObject("/Type"): NameObject("/Font"),
                NameObject("/Subtype"): NameObject("/Type1"),
                NameObject("/BaseFont"): NameObject(self._BASE_FONTS[name]),
                NameObject("/Encoding"): NameObject("/WinAnsiEncoding"),
            })
        return name

    def alpha_state(self, opacity: float) -> str:
        name = f"/GS{len(self._states)}"
        self._states[NameObject(name)] = DictionaryObject({
            NameObject("/Type"): NameObject("/ExtGState"),
            NameObject("/ca"): FloatObject(opacity),
            NameObject("/CA"): FloatObject(opacity),
        })
        return name

    def image(self, brand: BrandImage) -> str:
        image = _image_stream(brand.width, brand.height, brand.rgb, "/DeviceRGB")
        if brand.alpha is not None:
            smask = _image_stream(brand.width, brand.height, brand.alpha, "/DeviceGray")
            image[NameObject("/SMask")] = self._indirect(smask)
        name = f"/Im{len(self._xobjects)}"
        self._xobjects[NameObject(name)] = self._indirect(image)
        return name

    def render(self) -> PageObject:
        resources = DictionaryObject()
        if self._fonts:
            resources[NameObject("/Font")] = self._fonts
        if self._states:
            resources[NameObject("/ExtGState")] = self._states
        if self._xobjects:
            resources[NameObject("/XObject")] = self._xobjects
        self.page[NameObject("/Resources")] = resources
        stream = DecodedStreamObject()
        stream.set_data(b"\n".join(self.ops))
        self.page[NameObject("/Contents")] = self._indirect(stream)
        # через сериализацию: merge_page берёт страницу «чужого» документа как штамп
        return PdfReader(io.BytesIO(_write(self.writer))).pages[0]


def _image_stream(width: int, height: int, compressed: bytes, colorspace: str) -> DecodedStreamObject:
    stream = DecodedStreamObject()
    # данные уже сжаты zlib: /Filter ставим после set_data, чтобы pypdf не перекодировал
    stream.set_data(compressed)
    stream.update({
        NameObject("/Type"): NameObject("/XObject"),
        NameObject("/Subtype"): NameObject("/Image"),
        NameObject("/Width"): NumberObject(width),
        NameObject("/Height"): NumberObject(height),
        NameObject("/ColorSpace"): NameObject(colorspace),
        NameObject("/BitsPerComponent"): NumberObject(8),
        NameObject("/Filter"): NameObject("/FlateDecode"),
    })
    return stream


def _centered_line(font: str, text: str, size: float, cx: float, y: float) -> bytes:
    x = cx - len(text) * size * _AVG_GLYPH_WIDTH / 2
    return (
        f"BT {font} {_num(size)} Tf 0.15 g {_num(x)} {_num(y)} Td ".encode()
        + _pdf_string(text)
        + b" Tj ET"
    )


def _pdf_string(text: str) -> bytes:
    """PDF literal string в WinAnsi; символы вне кодировки заменяются на '?'."""
    raw = text.encode("cp1252", errors="replace")
    raw = raw.replace(b"\\", b"\\\\").replace(b"(", b"\\(").replace(b")", b"\\)")
    return b"(" + raw + b")"


def _num(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


def _write(writer: PdfWriter) -> bytes:
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


__all__ = [
    "BrandImage",
    "PageBox",
    "PdfOutput",
    "PdfReadError",
    "build_preview",
    "load_brand_image",
    "stamp_full",
]
