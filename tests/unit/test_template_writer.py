"""
Tests for template_writer — import template Excel generation.
"""

import pytest
from openpyxl import load_workbook

from parsers.sheet_parser import parse_sheet
from parsers.template_writer import TEMPLATE_SHEET_TITLE, build_template, template_filename
from services.entity_registry import APOLICES, CLIENTES, COMISSOES
from services.mapping_service import propose_mapping


class TestBuildTemplate:

    @pytest.mark.parametrize("config", [CLIENTES, APOLICES, COMISSOES])
    def test_header_row_and_examples(self, config):
        output = build_template(config)

        wb = load_workbook(output)
        ws = wb.active
        assert ws.title == TEMPLATE_SHEET_TITLE
        assert [cell.value for cell in ws[1]] == list(config.template_headers)
        assert ws.max_row == 1 + len(config.template_rows)
        assert ws["A1"].font.bold is True

    def test_template_maps_itself(self):
        """An untouched template gets every column mapped on upload."""
        output = build_template(APOLICES)

        sheet = parse_sheet(output.getvalue(), template_filename(APOLICES))
        mapping = propose_mapping(sheet.headers, APOLICES)

        assert None not in mapping.values()
        assert sheet.total_rows == len(APOLICES.template_rows)

    def test_filename(self):
        assert template_filename(COMISSOES) == "template_comissoes.xlsx"
