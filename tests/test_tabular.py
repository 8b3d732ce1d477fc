"""Tests for file parsing."""

from datetime import datetime
from io import BytesIO

import pytest
from openpyxl import Workbook

from app.core.exceptions import ParseError
from app.services.tabular import parse_csv, parse_upload


def xlsx_bytes(rows: list[list]) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class TestDelimitedText:
    def test_semicolon_file_with_decimal_commas_uses_semicolon(self):
        table = parse_csv("nome;nota\nAna;7,5\nBia;8,0".encode())

        assert table.delimiter == ";"
        assert table.columns == ["nome", "nota"]
        assert table.rows[0].cells == {"nome": "Ana", "nota": "7,5"}

    def test_tab_separated(self):
        table = parse_csv(b"codigo\tnome\nCC\tComputacao\nENG\tEngenharia")

        assert table.delimiter == "\t"
        assert [r.cells["codigo"] for r in table.rows] == ["CC", "ENG"]

    def test_tie_keeps_comma(self):
        table = parse_csv(b"nome\nAna\nBia")

        assert table.delimiter == ","
        assert len(table.rows) == 2

    def test_rows_cite_source_lines(self):
        table = parse_csv(b"a,b\n1,2\n,\n3,4")

        assert [r.line for r in table.rows] == [2, 4]

    def test_leading_blank_lines_keep_source_line_numbers(self):
        table = parse_csv(b"\n\na,b\n1,2\n\n3,4\n")

        assert table.columns == ["a", "b"]
        assert [r.line for r in table.rows] == [4, 6]

    def test_cells_are_trimmed_and_short_rows_padded(self):
        table = parse_csv(b"a,b,c\n 1 , 2\n")

        assert table.rows[0].cells == {"a": "1", "b": "2", "c": ""}

    def test_latin1_content(self):
        table = parse_csv("nome,raça\nAna,Parda".encode("latin-1"))

        assert table.columns == ["nome", "raça"]

    def test_single_line_is_rejected(self):
        with pytest.raises(ParseError) as exc_info:
            parse_csv(b"nome,codigo\n")

        assert exc_info.value.code == "PARSE_ERROR"

    def test_header_followed_by_blank_lines_is_rejected(self):
        with pytest.raises(ParseError):
            parse_csv(b"a,b\n\n  \n")


class TestSpreadsheets:
    def test_xlsx_keeps_cell_types(self):
        content = xlsx_bytes([
            ["matricula", "nota", "data"],
            [2024001, 7.5, datetime(2024, 3, 1)],
            [None, None, None],
            ["S2", 9, 45292],
        ])

        table = parse_upload(content, "notas.xlsx")

        assert table.columns == ["matricula", "nota", "data"]
        assert [r.line for r in table.rows] == [2, 4]
        first = table.rows[0].cells
        assert first["matricula"] == 2024001
        assert first["nota"] == 7.5
        assert first["data"] == datetime(2024, 3, 1)
        assert table.rows[1].cells["data"] == 45292

    def test_xlsx_without_any_value_is_rejected(self):
        with pytest.raises(ParseError) as exc_info:
            parse_upload(xlsx_bytes([["codigo", "nome"], ["  ", None]]), "cursos.xlsx")

        assert "no data" in exc_info.value.message

    def test_xlsx_header_only_is_rejected(self):
        with pytest.raises(ParseError):
            parse_upload(xlsx_bytes([["codigo", "nome"]]), "cursos.xlsx")

    def test_corrupt_xlsx_is_rejected(self):
        with pytest.raises(ParseError) as exc_info:
            parse_upload(b"not a zip file", "cursos.xlsx")

        assert "Failed to parse" in exc_info.value.message

    def test_corrupt_xls_is_rejected(self):
        with pytest.raises(ParseError):
            parse_upload(b"not a workbook", "cursos.xls")


def test_extension_is_case_insensitive():
    table = parse_upload(b"codigo,nome\nCC,Computacao", "CURSOS.CSV")

    assert len(table.rows) == 1


def test_unsupported_extension():
    with pytest.raises(ParseError) as exc_info:
        parse_upload(b"codigo,nome\nCC,Computacao", "cursos.txt")

    assert ".txt" in exc_info.value.message
