from __future__ import annotations

import pytest


@pytest.mark.parametrize(
    ("filename", "content_type", "head", "expected"),
    [
        ("statement.CSV", None, b"", "csv"),
        ("card.xlsx", "application/octet-stream", b"", "xlsx"),
        ("bank.ppf", None, b"", "ppf"),
        ("download", "text/csv; charset=utf-8", b"", "csv"),
        ("download", "application/vnd.ms-excel", b"", "xls"),
        (
            "download",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            b"",
            "xlsx",
        ),
        ("download", None, b"%PDF-1.7\n", "pdf"),
        ("download.bin", None, b"PK\x03\x04rest", "xlsx"),
        ("download.bin", None, b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1rest", "xls"),
        ("export.dat", None, b"date,amount\n2026-01-01,100\n", "csv"),
        ("export.dat", None, b"date\tamount\r\n", "csv"),
    ],
)
def test_detect_format_precedence(filename, content_type, head, expected):
    from spend_ledger.modules.importer.sniffer import detect_format

    assert detect_format(filename, content_type, head) == expected


def test_extension_wins_over_content():
    from spend_ledger.modules.importer.sniffer import detect_format

    assert detect_format("statement.xls", "application/pdf", b"%PDF-1.4") == "xls"


def test_unknown_content_returns_raw_extension():
    from spend_ledger.modules.importer.sniffer import detect_format

    assert detect_format("photo.JPG", "image/jpeg", b"\xff\xd8\xff\xe0") == "jpg"
    assert detect_format("noext", None, b"\x00\x01") == ""
