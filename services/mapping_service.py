"""
Column mapping for spreadsheet imports.

Proposes which uploaded column feeds which entity field by fuzzy header
matching, applies operator corrections, and resolves the final mapping the
validator works from.

Duplicate targets follow a first-wins policy: when two columns point at the
same field, the first one in mapping order is used and the others are
reported back as warnings.
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional
import structlog

from exceptions import InvalidMappingError
from services.entity_registry import EntityTypeConfig
from utils.text_utils import normalize_header

logger = structlog.get_logger(__name__)

ColumnMapping = dict[str, Optional[str]]


@dataclass
class ResolvedMapping:
    """Effective column -> field pairs after duplicate resolution."""
    columns: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def fields(self) -> set[str]:
        return set(self.columns.values())


def match_field(header: str, candidates: Iterable[str]) -> Optional[str]:
    """
    Find the first candidate field whose normalized name contains, or is
    contained in, the normalized header.

    "CPF" -> "cpf_cnpj", "E-mail" -> "email", "Data Início" -> "data_inicio"
    """
    normalized = normalize_header(header)
    if not normalized:
        return None

    for candidate in candidates:
        target = normalize_header(candidate)
        if not target:
            continue
        if target in normalized or normalized in target:
            return candidate
    return None


def propose_mapping(headers: Iterable[str], config: EntityTypeConfig) -> ColumnMapping:
    """
    Build a best-effort mapping for the uploaded headers.

    Every header appears in the result; unmatched headers map to None.
    Never raises: a poor proposal is corrected by the operator before
    validation.
    """
    mapping: ColumnMapping = {}
    for header in headers:
        mapping[header] = match_field(header, config.fields)

    matched = sum(1 for target in mapping.values() if target)
    logger.debug(
        "mapping_proposed",
        entity_type=config.key,
        headers=len(mapping),
        matched=matched
    )
    return mapping


def apply_overrides(mapping: Mapping[str, Optional[str]], overrides: Mapping[str, Optional[str]]) -> ColumnMapping:
    """
    Apply operator corrections on top of a proposed mapping.

    An override of None or "" marks the column as ignored. Columns only
    present in the overrides are appended.
    """
    merged: ColumnMapping = dict(mapping)
    for column, target in overrides.items():
        merged[column] = target or None
    return merged


def _clean_target(target: Optional[str]) -> Optional[str]:
    if target is None:
        return None
    return target.strip() or None


def resolve_mapping(mapping: Mapping[str, Optional[str]], config: EntityTypeConfig) -> ResolvedMapping:
    """
    Validate mapping targets and settle duplicates (first wins).

    Raises:
        InvalidMappingError: If any target is not a field of the entity type
    """
    valid_fields = set(config.fields)
    targets = {column: _clean_target(target) for column, target in mapping.items()}
    invalid = {
        column: target
        for column, target in targets.items()
        if target and target not in valid_fields
    }
    if invalid:
        logger.warning(
            "mapping_invalid_targets",
            entity_type=config.key,
            invalid=invalid
        )
        raise InvalidMappingError(config.key, invalid, list(config.fields))

    resolved = ResolvedMapping()
    first_column: dict[str, str] = {}
    for column, target in targets.items():
        if not target:
            continue
        if target in first_column:
            resolved.warnings.append(
                f'Column "{column}" ignored: field "{target}" is already mapped from "{first_column[target]}"'
            )
            continue
        first_column[target] = column
        resolved.columns[column] = target

    if resolved.warnings:
        logger.info(
            "mapping_duplicates_ignored",
            entity_type=config.key,
            warnings=resolved.warnings
        )

    return resolved
