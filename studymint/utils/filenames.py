import os

PDF_CONTENT_TYPE = "application/pdf"


def is_pdf(content_type: str | None, file_name: str | None) -> bool:
    """PDF по объявленному content type или по расширению файла."""
    if content_type and content_type.split(";")[0].strip().lower() == PDF_CONTENT_TYPE:
        return True
    return bool(file_name) and file_name.lower().endswith(".pdf")


def attachment_name(display_name: str, original_file_name: str) -> str:
    """
    Имя для Content-Disposition: отображаемое имя + расширение оригинала
    в нижнем регистре, без дублирования («Notes.PDF» + notes.pdf -> «Notes.pdf»).
    """
    ext = os.path.splitext(original_file_name)[1].lower()
    base = (display_name or "").strip() or os.path.splitext(original_file_name)[0] or "document"
    stem, current = os.path.splitext(base)
    if ext and current.lower() == ext:
        base = stem
    # символы, ломающие заголовок или путь
    for ch in ('"', "/", "\\", "\r", "\n"):
        base = base.replace(ch, "_")
    return f"{base}{ext}"
