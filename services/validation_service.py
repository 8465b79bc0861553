"""
Row validation for spreadsheet imports.

Applies the column mapping to each uploaded row, then checks required
fields and entity-specific formats. Validation never touches the database
and never raises for bad data: every problem found on a row is reported in
its RowOutcome so the operator can fix them all at once.
"""

from typing import Any, Callable, Mapping, Optional, Sequence
import structlog

from models.import_records import CellValue
from models.imports import RowOutcome
from services.entity_registry import EntityTypeConfig
from services.mapping_service import ResolvedMapping
from utils.cell_utils import is_blank, parse_amount, parse_date
from utils.text_utils import only_digits

logger = structlog.get_logger(__name__)

# Header occupies row 1, first data row is row 2
FIRST_DATA_ROW = 2

TAX_ID_LENGTHS = (11, 14)  # CPF, CNPJ

RawRow = Mapping[str, CellValue]
MappedRecord = dict[str, CellValue]


def row_number_for(index: int) -> int:
    """File row number for a zero-based data row index."""
    return index + FIRST_DATA_ROW


def build_record(row: RawRow, mapping: ResolvedMapping) -> MappedRecord:
    """Copy each mapped column present in the row to its target field."""
    return {
        target: row[column]
        for column, target in mapping.columns.items()
        if column in row
    }


def required_field_message(field_name: str) -> str:
    return f'Campo obrigatório "{field_name}" está vazio'


def invalid_amount_message(field_name: str) -> str:
    return f'Valor inválido para "{field_name}"'


# ===================
# ENTITY CHECKS
# ===================

def _present(record: MappedRecord, field_name: str) -> Optional[Any]:
    """Field value if mapped and non-blank, else None."""
    value = record.get(field_name)
    return None if is_blank(value) else value


def _check_client(record: MappedRecord) -> list[str]:
    errors = []

    tax_id = _present(record, "cpf_cnpj")
    if tax_id is not None and len(only_digits(tax_id)) not in TAX_ID_LENGTHS:
        errors.append("CPF/CNPJ inválido")

    email = _present(record, "email")
    if email is not None and "@" not in str(email):
        errors.append("Email inválido")

    return errors


def _check_policy(record: MappedRecord) -> list[str]:
    errors = []

    start = _present(record, "data_inicio")
    if start is not None and parse_date(start) is None:
        errors.append("Data de início inválida")

    end = _present(record, "data_vencimento")
    if end is not None and parse_date(end) is None:
        errors.append("Data de vencimento inválida")

    premium = _present(record, "valor_premio")
    if premium is not None and parse_amount(premium) is None:
        errors.append(invalid_amount_message("valor_premio"))

    return errors


def _check_commission(record: MappedRecord) -> list[str]:
    errors = []

    for field_name in ("valor_bruto", "valor_liquido"):
        value = _present(record, field_name)
        if value is not None and parse_amount(value) is None:
            errors.append(invalid_amount_message(field_name))

    received = _present(record, "data_receita")
    if received is not None and parse_date(received) is None:
        errors.append("Data de receita inválida")

    return errors


ENTITY_CHECKS: dict[str, Callable[[MappedRecord], list[str]]] = {
    "clientes": _check_client,
    "apolices": _check_policy,
    "comissoes": _check_commission,
}


# ===================
# VALIDATION
# ===================

def validate_row(
    row: RawRow,
    mapping: ResolvedMapping,
    config: EntityTypeConfig,
    row_number: int,
) -> RowOutcome:
    """
    Validate one uploaded row.

    Args:
        row: Source column -> raw cell value
        mapping: Resolved column mapping
        config: Entity type being imported
        row_number: Row number in the file, for diagnostics

    Returns:
        RowOutcome with the mapped record and every error found
    """
    record = build_record(row, mapping)
    errors: list[str] = []

    for field_name in config.required_fields:
        if is_blank(record.get(field_name)):
            errors.append(required_field_message(field_name))

    check = ENTITY_CHECKS.get(config.key)
    if check is not None:
        errors.extend(check(record))

    return RowOutcome(
        row_number=row_number,
        record=record,
        valid=not errors,
        errors=errors,
    )


def validate_rows(
    rows: Sequence[RawRow],
    mapping: ResolvedMapping,
    config: EntityTypeConfig,
    row_numbers: Optional[Sequence[int]] = None,
) -> list[RowOutcome]:
    """
    Validate every row in file order.

    row_numbers gives the file row of each entry (blank rows skipped by the
    parser leave gaps); without it rows are numbered by position.
    """
    numbers = row_numbers or [row_number_for(index) for index in range(len(rows))]
    outcomes = [
        validate_row(row, mapping, config, row_number)
        for row, row_number in zip(rows, numbers)
    ]

    invalid = sum(1 for outcome in outcomes if not outcome.valid)
    logger.info(
        "rows_validated",
        entity_type=config.key,
        total=len(outcomes),
        valid=len(outcomes) - invalid,
        invalid=invalid
    )
    return outcomes
