from __future__ import annotations

from datetime import datetime


def test_bank_export_with_preamble_finds_header_and_splits_debit_credit():
    from spend_ledger.modules.importer.parsers.csv_statement import CsvStatementParser

    text = (
        "하나은행 거래내역조회\n"
        "계좌번호,110-123-456789\n"
        "\n"
        "거래일시,적요,출금,입금,잔액\n"
        "2026-02-01 09:15,스타벅스,4500,0,95500\n"
        "2026-02-02 12:00,급여,0,2500000,2595500\n"
    )

    result = CsvStatementParser().parse(text.encode("cp949"))

    assert [r.signed_amount for r in result.records] == [-4500, 2500000]
    first = result.records[0]
    assert first.occurred_at == datetime(2026, 2, 1, 9, 15)
    assert first.description == "스타벅스"
    assert first.merchant == "스타벅스"
    assert first.raw["잔액"] == "95500"


def test_semicolon_export_with_signed_amount_column():
    from spend_ledger.modules.importer.parsers.csv_statement import parse_delimited_text
    from spend_ledger.modules.ledger.models import EntrySource

    result = parse_delimited_text(
        "Date;Description;Amount\n2026-03-01;Rent;-700000\n2026-03-02;Refund;12000\n",
        source=EntrySource.CSV_IMPORT,
    )

    assert [(r.description, r.signed_amount) for r in result.records] == [
        ("Rent", -700000),
        ("Refund", 12000),
    ]
    assert all(r.source == EntrySource.CSV_IMPORT for r in result.records)


def test_quoted_thousands_separators_survive_comma_splitting():
    from spend_ledger.modules.importer.parsers.csv_statement import CsvStatementParser

    body = b'date,memo,amount\n2026-03-02,Lunch,"-12,000"\n'

    result = CsvStatementParser().parse(body)

    assert len(result) == 1
    assert result.records[0].signed_amount == -12000
    assert result.records[0].description == "Lunch"


def test_bom_and_unparseable_rows():
    from spend_ledger.modules.importer.parsers.csv_statement import CsvStatementParser

    body = "\ufeffdate,description,amount\n2026-01-05,Taxi,-8900\n소계,,-8900\n".encode("utf-8")

    result = CsvStatementParser().parse(body)

    assert [r.signed_amount for r in result.records] == [-8900]
    assert result.skipped_rows == 1


def test_month_day_dates_use_reference_year():
    from spend_ledger.modules.importer.parsers.csv_statement import CsvStatementParser

    body = "이용일,가맹점,이용금액\n01/03,편의점,3200\n".encode("utf-8")

    result = CsvStatementParser().parse(body, reference=datetime(2026, 1, 20))

    assert result.records[0].occurred_at == datetime(2026, 1, 3)
    assert result.records[0].signed_amount == -3200


def test_empty_body_yields_nothing():
    from spend_ledger.modules.importer.parsers.csv_statement import CsvStatementParser

    parser = CsvStatementParser()

    assert parser.parse(b"").records == []
    assert parser.parse(b"  \n \n").records == []
    assert parser.supports("CSV")
    assert not parser.supports("xlsx")


def test_short_rows_keep_cells_in_column_order():
    from spend_ledger.modules.importer.parsers.csv_statement import CsvStatementParser

    body = (
        "거래일자,적요,출금,입금,잔액\n"
        "2026-01-05,스타벅스,4500\n"
        "2026-01-06,편의점,3000,,92500\n"
    ).encode("utf-8")

    result = CsvStatementParser().parse(body)

    assert [(r.description, r.signed_amount) for r in result.records] == [
        ("스타벅스", -4500),
        ("편의점", -3000),
    ]
    assert result.skipped_rows == 0
    assert result.records[0].raw["잔액"] == ""
