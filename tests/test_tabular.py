from __future__ import annotations

import pytest

_HEADER = ["거래일자", "적요", "출금", "입금", "잔액"]
_PREAMBLE = [
    ["계좌번호", "110-123-456789"],
    ["거래일자", "2026-01-31"],
    ["조회기간 2026.01.01 ~ 2026.01.31"],
]


def test_align_values_to_headers_leaves_missing_amount_column_blank():
    from spend_ledger.modules.importer.tabular import align_values_to_headers

    headers = [
        "이용일",
        "이용카드",
        "이용가맹점",
        "이용금액",
        "할부/회차",
        "예상적립/할인율(%)",
        "예상적립/할인",
        "결제원금",
        "결제후잔액",
        "수수료(이자)",
    ]
    values = [
        "2026년 02월 17일",
        "본인L Hyundai Mobility카드",
        "(주)다날 - 카카오 20,000",
        "",
        "1.0%",
        "200",
        "20,000",
        "0",
        "0",
    ]

    aligned = align_values_to_headers(headers, values)

    assert len(aligned) == 10
    assert aligned[3] == ""
    assert aligned[7] == "20,000"
    assert aligned[9] == "0"


def test_align_values_to_headers_truncates_long_rows():
    from spend_ledger.modules.importer.tabular import align_values_to_headers

    assert align_values_to_headers(["date", "amount"], ["2026-01-01", "100", "extra"]) == [
        "2026-01-01",
        "100",
    ]


def test_score_header_prefers_real_header_over_preamble():
    from spend_ledger.modules.importer.tabular import score_header

    header = score_header(["거래일자", "적요", "출금", "입금", "잔액"])
    preamble = score_header(["조회기간 2026.01.01 ~ 2026.01.31"])

    assert header is not None and header >= 6
    assert preamble is not None and preamble < 0
    assert score_header(["", "  "]) is None


def test_find_header_index_skips_preamble_rows():
    from spend_ledger.modules.importer.tabular import find_header_index

    rows = [
        ["", ""],
        ["거래내역조회", ""],
        ["계좌번호", "110-123-456789"],
        ["거래일자", "적요", "출금", "입금", "잔액"],
        ["2026-02-01", "스타벅스", "4500", "0", "95500"],
    ]

    assert find_header_index(rows, 30) == 3


def test_find_header_index_falls_back_to_first_non_blank_row():
    from spend_ledger.modules.importer.tabular import find_header_index

    rows = [[""], ["a", "b"], ["1", "2"]]

    assert find_header_index(rows, 30) == 1
    assert find_header_index([[""], ["  "]], 30) is None


def test_find_header_index_respects_window():
    from spend_ledger.modules.importer.tabular import find_header_index

    rows = [["preamble"]] * 5 + [["date", "description", "amount"]]

    assert find_header_index(rows, 2) == 0
    assert find_header_index(rows, 10) == 5


def test_detect_delimiter():
    from spend_ledger.modules.importer.tabular import detect_delimiter

    assert detect_delimiter("a\tb,c") == "\t"
    assert detect_delimiter("a;b;c,d") == ";"
    assert detect_delimiter("a,b;c") == ","
    assert detect_delimiter("no separators") == ","


def test_normalize_headers_names_blank_columns():
    from spend_ledger.modules.importer.tabular import normalize_headers

    assert normalize_headers([" date ", "", "amount"]) == ["date", "col_1", "amount"]


def test_records_from_table_counts_skipped_rows_but_not_blank_ones():
    from spend_ledger.modules.importer.tabular import records_from_table
    from spend_ledger.modules.ledger.models import EntrySource

    result = records_from_table(
        ["date", "description", "amount"],
        [
            ["2026-01-03", "Coffee", "-4,500"],
            ["", "", ""],
            ["합계", "", "-4,500"],
        ],
        source=EntrySource.CSV_IMPORT,
    )

    assert [r.signed_amount for r in result.records] == [-4500]
    assert result.skipped_rows == 1
    assert len(result) == 1


def test_decode_best_effort_handles_korean_codepage_and_boms():
    from spend_ledger.modules.importer.tabular import decode_best_effort

    text = "거래일자,금액\n2026-01-01,1000\n"

    assert decode_best_effort(text.encode("cp949")) == text
    assert decode_best_effort(text.encode("utf-8")) == text
    assert decode_best_effort(b"\xef\xbb\xbf" + text.encode("utf-8")) == text
    assert decode_best_effort(b"\xff\xfe" + text.encode("utf-16-le")) == text
    assert decode_best_effort(b"\xfe\xff" + text.encode("utf-16-be")) == text


def test_parse_html_table_unescapes_cells():
    from spend_ledger.modules.importer.tabular import looks_like_html_table, parse_html_table

    html = (
        "<html><body><table>"
        "<tr><th>거래일자</th><th>금액</th></tr>"
        "<tr><td>2026-01-02</td><td><b>1,000</b>&nbsp;원</td></tr>"
        "<tr></tr>"
        "</table></body></html>"
    )

    assert looks_like_html_table(html)
    assert parse_html_table(html) == [["거래일자", "금액"], ["2026-01-02", "1,000 원"]]
    assert not looks_like_html_table("date,amount\n")


@pytest.mark.parametrize(
    ("window_setting", "position"),
    [
        ("text_header_scan_rows", 0),
        ("text_header_scan_rows", 7),
        ("text_header_scan_rows", 19),
        ("text_header_scan_rows", 30),
        ("sheet_header_scan_rows", 0),
        ("sheet_header_scan_rows", 31),
        ("sheet_header_scan_rows", 60),
    ],
)
def test_header_is_found_anywhere_inside_the_window(window_setting, position):
    from spend_ledger.core.config import settings
    from spend_ledger.modules.importer.tabular import find_header_index, score_header

    preamble = [_PREAMBLE[i % len(_PREAMBLE)] for i in range(position)]
    rows = [
        *preamble,
        _HEADER,
        ["2026-02-01", "스타벅스", "4500", "0", "95500"],
        ["2026-02-02", "급여", "0", "2500000", "2595500"],
    ]

    index = find_header_index(rows, getattr(settings, window_setting))

    assert all(score_header(row) < settings.header_min_score for row in preamble)
    assert index == position
    assert rows[index] == _HEADER


@pytest.mark.parametrize("position", [0, 4, 12, 29])
def test_delimited_text_reads_the_same_records_wherever_the_header_sits(position):
    from spend_ledger.modules.importer.parsers.csv_statement import parse_delimited_text
    from spend_ledger.modules.ledger.models import EntrySource

    preamble = [",".join(_PREAMBLE[i % len(_PREAMBLE)]) for i in range(position)]
    text = "\n".join(
        [
            *preamble,
            ",".join(_HEADER),
            "2026-02-01,스타벅스,4500,0,95500",
            "2026-02-02,급여,0,2500000,2595500",
        ]
    )

    result = parse_delimited_text(text, source=EntrySource.CSV_IMPORT)

    assert [(r.description, r.signed_amount) for r in result.records] == [
        ("스타벅스", -4500),
        ("급여", 2500000),
    ]
