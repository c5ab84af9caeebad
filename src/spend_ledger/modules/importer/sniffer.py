from __future__ import annotations

SUPPORTED_EXTENSIONS = ("csv", "xls", "xlsx", "pdf", "ppf")

_MEDIA_TYPES = {
    "text/csv": "csv",
    "application/csv": "csv",
    "text/plain": "csv",
    "application/pdf": "pdf",
    "application/vnd.ms-excel": "xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "application/vnd.ms-excel.sheet.macroenabled.12": "xlsx",
    "application/vnd.ms-excel.sheet.binary.macroenabled.12": "xls",
}

_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def file_extension(filename: str | None) -> str:
    name = (filename or "").strip()
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].strip().lower()


def detect_format(filename: str | None, content_type: str | None, head: bytes) -> str:
    """Resolve a statement format: extension, then media type, then magic bytes.

    The raw extension comes back when nothing matches, so callers can name it
    in the error.
    """
    extension = file_extension(filename)
    if extension in SUPPORTED_EXTENSIONS:
        return extension

    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if media_type in _MEDIA_TYPES:
        return _MEDIA_TYPES[media_type]

    sniffed = _sniff_magic(head)
    if sniffed:
        return sniffed
    return extension


def _sniff_magic(head: bytes) -> str | None:
    if not head:
        return None
    if _looks_like_pdf_bytes(head):
        return "pdf"
    if head.startswith(b"PK\x03\x04"):
        return "xlsx"
    if head.startswith(_OLE_MAGIC):
        return "xls"
    if _looks_like_delimited_text(head):
        return "csv"
    return None


def _looks_like_pdf_bytes(head: bytes) -> bool:
    b = head.lstrip()
    if b.startswith(b"\xef\xbb\xbf"):
        b = b[3:].lstrip()
    return b.startswith(b"%PDF")


def _looks_like_delimited_text(head: bytes) -> bool:
    if head.startswith(b"\xff\xfe"):
        text = head[2:].decode("utf-16-le", errors="ignore")
    elif head.startswith(b"\xfe\xff"):
        text = head[2:].decode("utf-16-be", errors="ignore")
    elif b"\x00" in head:
        return False
    else:
        text = head.decode("utf-8", errors="ignore")
    return ("," in text or "\t" in text or ";" in text) and ("\n" in text or "\r" in text)
