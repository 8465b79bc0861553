"""
Typed views of mapped spreadsheet rows, one model per importable entity.

Field names match the target fields of the entity type registry; unknown
fields are rejected so a misspelled field name fails loudly.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

# Raw spreadsheet cell as it reaches the pipeline
CellValue = Optional[Union[str, bool, int, float]]


class ImportRecord(BaseModel):
    """Base for mapped import records."""
    model_config = ConfigDict(extra="forbid")


class ClientImportRecord(ImportRecord):
    """Row of a client (clientes) import."""
    nome: CellValue = None
    cpf_cnpj: CellValue = None
    email: CellValue = None
    telefone: CellValue = None
    tipo: CellValue = None  # Ignored on write; derived from the tax ID length
    cidade: CellValue = None
    estado: CellValue = None
    cep: CellValue = None


class PolicyImportRecord(ImportRecord):
    """Row of a policy (apolices) import."""
    numero_apolice: CellValue = None
    cliente_cpf_cnpj: CellValue = None
    seguradora: CellValue = None
    ramo: CellValue = None
    valor_premio: CellValue = None
    data_inicio: CellValue = None
    data_vencimento: CellValue = None


class CommissionImportRecord(ImportRecord):
    """Row of a commission (comissoes) import."""
    numero_apolice: CellValue = None
    valor_bruto: CellValue = None
    valor_liquido: CellValue = None
    data_receita: CellValue = None
    status: CellValue = None
