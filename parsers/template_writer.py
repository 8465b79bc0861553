"""
Downloadable import templates.

Builds an .xlsx per entity type with the expected header row and a couple
of example rows, so operators start from a file the mapping step
recognizes.
"""

from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
import structlog

from services.entity_registry import EntityTypeConfig

logger = structlog.get_logger(__name__)

TEMPLATE_SHEET_TITLE = "Dados"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def template_filename(config: EntityTypeConfig) -> str:
    return f"template_{config.key}.xlsx"


def build_template(config: EntityTypeConfig) -> BytesIO:
    """
    Generate the import template for an entity type.

    Falls back to the raw field names when the entity type has no
    template headers configured.

    Returns:
        BytesIO containing the Excel file
    """
    headers = list(config.template_headers or config.fields)

    wb = Workbook()
    ws = wb.active
    ws.title = TEMPLATE_SHEET_TITLE

    header_font = Font(bold=True)
    header_fill = PatternFill(start_color="E0E8FF", end_color="E0E8FF", fill_type="solid")

    ws.append(headers)
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill

    for row in config.template_rows:
        ws.append(list(row))

    for index, header in enumerate(headers, start=1):
        longest = max([len(str(header))] + [len(str(row[index - 1])) for row in config.template_rows if len(row) >= index])
        ws.column_dimensions[get_column_letter(index)].width = longest + 4

    output = BytesIO()
    wb.save(output)
    output.seek(0)

    logger.info(
        "import_template_built",
        entity_type=config.key,
        columns=len(headers),
        example_rows=len(config.template_rows)
    )
    return output
