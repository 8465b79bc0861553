"""
Unit tests for the spreadsheet parser.

Files are built in memory with openpyxl so each cell type is controlled.
"""

from datetime import datetime
from io import BytesIO

import pytest
from openpyxl import Workbook

from exceptions import ExcelParseError, UnsupportedFileTypeError
from parsers.sheet_parser import file_extension, parse_sheet


def workbook_bytes(rows: list[list]) -> bytes:
    """Helper to create an .xlsx file in memory, first row = headers."""
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    output = BytesIO()
    wb.save(output)
    return output.getvalue()


# ===================
# EXTENSIONS
# ===================

class TestFileExtension:

    @pytest.mark.parametrize("filename,expected", [
        ("clientes.xlsx", ".xlsx"),
        ("CLIENTES.XLSX", ".xlsx"),
        ("antigo.xls", ".xls"),
        ("export.csv", ".csv"),
    ])
    def test_allowed(self, filename, expected):
        assert file_extension(filename) == expected

    @pytest.mark.parametrize("filename", ["clientes.pdf", "clientes", "", None])
    def test_rejected(self, filename):
        with pytest.raises(UnsupportedFileTypeError):
            file_extension(filename)

    def test_custom_allowed_list(self):
        with pytest.raises(UnsupportedFileTypeError):
            file_extension("export.csv", allowed=[".xlsx"])


# ===================
# XLSX
# ===================

class TestParseXlsx:

    def test_headers_and_rows(self):
        # Arrange
        content = workbook_bytes([
            ["Nome", "CPF/CNPJ", "Email"],
            ["João da Silva", "123.456.789-00", "joao@email.com"],
            ["Maria Souza", "987.654.321-00", None],
        ])

        # Act
        sheet = parse_sheet(content, "clientes.xlsx")

        # Assert
        assert sheet.headers == ["Nome", "CPF/CNPJ", "Email"]
        assert sheet.total_rows == 2
        assert sheet.rows[0] == {"Nome": "João da Silva", "CPF/CNPJ": "123.456.789-00", "Email": "joao@email.com"}
        assert sheet.rows[1]["Email"] is None

    def test_cell_types_normalized(self):
        content = workbook_bytes([
            ["CPF", "Prêmio", "Início"],
            [12345678900, 2500.5, datetime(2024, 1, 31)],
        ])

        sheet = parse_sheet(content, "apolices.xlsx")

        row = sheet.rows[0]
        assert row["CPF"] == 12345678900
        assert isinstance(row["CPF"], int)
        assert row["Prêmio"] == 2500.5
        assert row["Início"] == "2024-01-31"

    def test_blank_rows_dropped(self):
        content = workbook_bytes([
            ["Nome", "CPF/CNPJ"],
            ["Ana", "12345678900"],
            [None, None],
            ["Bruno", "98765432100"],
        ])

        sheet = parse_sheet(content, "clientes.xlsx")

        assert [row["Nome"] for row in sheet.rows] == ["Ana", "Bruno"]
        assert sheet.row_numbers == [2, 4]

    def test_blank_and_repeated_headers(self):
        content = workbook_bytes([
            ["Nome", None, "Nome"],
            ["Ana", "x", "Ana Maria"],
        ])

        sheet = parse_sheet(content, "clientes.xlsx")

        assert sheet.headers == ["Nome", "Coluna 2", "Nome (2)"]
        assert sheet.rows[0]["Nome (2)"] == "Ana Maria"

    def test_header_only_file_rejected(self):
        content = workbook_bytes([["Nome", "CPF/CNPJ"]])

        with pytest.raises(ExcelParseError):
            parse_sheet(content, "clientes.xlsx")

    def test_corrupt_file_rejected(self):
        with pytest.raises(ExcelParseError) as exc_info:
            parse_sheet(b"definitely not a spreadsheet", "clientes.xlsx")

        assert exc_info.value.code == "EXCEL_PARSE_ERROR"

    def test_empty_content_rejected(self):
        with pytest.raises(ExcelParseError):
            parse_sheet(b"", "clientes.xlsx")

    def test_unsupported_extension_rejected_before_reading(self):
        with pytest.raises(UnsupportedFileTypeError):
            parse_sheet(b"%PDF-1.4", "clientes.pdf")


# ===================
# CSV
# ===================

class TestParseCsv:

    def test_semicolon_latin1(self):
        """Brazilian Excel exports: ';' separated, latin-1 encoded."""
        content = (
            "Nome;CPF/CNPJ;Cidade\n"
            "João;12345678900;São Paulo\n"
            "Maria;98765432100;Campinas\n"
        ).encode("latin-1")

        sheet = parse_sheet(content, "clientes.csv")

        assert sheet.headers == ["Nome", "CPF/CNPJ", "Cidade"]
        assert sheet.rows[0] == {"Nome": "João", "CPF/CNPJ": "12345678900", "Cidade": "São Paulo"}
        assert sheet.total_rows == 2

    def test_comma_utf8_keeps_leading_zeros(self):
        content = (
            "Número Apólice,Valor Bruto,Data Receita\n"
            "APO-001,0375.00,2024-01-15\n"
            "APO-002,,2024-02-15\n"
        ).encode("utf-8")

        sheet = parse_sheet(content, "comissoes.csv")

        assert sheet.rows[0]["Valor Bruto"] == "0375.00"
        assert sheet.rows[1]["Valor Bruto"] is None

    def test_single_column_not_split(self):
        sheet = parse_sheet(b"Nome\nAna\nBia\n", "clientes.csv")

        assert sheet.headers == ["Nome"]
        assert sheet.rows == [{"Nome": "Ana"}, {"Nome": "Bia"}]

    def test_tab_separated(self):
        content = "Nome\tCPF/CNPJ\nAna\t12345678900\n".encode("utf-8")

        sheet = parse_sheet(content, "clientes.csv")

        assert sheet.headers == ["Nome", "CPF/CNPJ"]
        assert sheet.rows[0]["CPF/CNPJ"] == "12345678900"

    def test_blank_line_keeps_file_row_numbers(self):
        content = "Nome;CPF/CNPJ\nAna;12345678900\n\nBia;123\n".encode("utf-8")

        sheet = parse_sheet(content, "clientes.csv")

        assert [row["Nome"] for row in sheet.rows] == ["Ana", "Bia"]
        assert sheet.row_numbers == [2, 4]
