"""
Catalog of importable entity types.

Each entry names the fields an upload may map to, which of them are
required, the natural key used to find existing records and the table the
rows land in. The registry is an explicit object handed to the services so
tests can swap in their own catalog.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from models.import_records import (
    ImportRecord,
    ClientImportRecord,
    PolicyImportRecord,
    CommissionImportRecord,
)
from models.imports import EntityTypeInfo
from exceptions import UnknownEntityTypeError


@dataclass(frozen=True)
class EntityTypeConfig:
    """Static description of one importable entity type."""
    key: str
    label: str
    fields: tuple[str, ...]
    required_fields: tuple[str, ...]
    natural_key: tuple[str, ...]
    target_table: str
    record_model: type[ImportRecord]
    aliases: tuple[str, ...] = ()
    template_headers: tuple[str, ...] = ()
    template_rows: tuple[tuple[str, ...], ...] = field(default=())

    def __post_init__(self):
        model_fields = set(self.record_model.model_fields)
        if set(self.fields) != model_fields:
            raise ValueError(
                f"Entity type '{self.key}' fields {sorted(self.fields)} do not match "
                f"{self.record_model.__name__} fields {sorted(model_fields)}"
            )
        unknown = (set(self.required_fields) | set(self.natural_key)) - model_fields
        if unknown:
            raise ValueError(f"Entity type '{self.key}' references unknown fields: {sorted(unknown)}")

    def to_info(self) -> EntityTypeInfo:
        return EntityTypeInfo(
            key=self.key,
            label=self.label,
            fields=list(self.fields),
            required_fields=list(self.required_fields),
            natural_key=list(self.natural_key),
            aliases=list(self.aliases),
        )


class EntityTypeRegistry:
    """Lookup of entity types by key or alias (case-insensitive)."""

    def __init__(self, configs: Iterable[EntityTypeConfig]):
        self._configs: dict[str, EntityTypeConfig] = {}
        self._lookup: dict[str, str] = {}
        for config in configs:
            if config.key in self._configs:
                raise ValueError(f"Duplicate entity type: {config.key}")
            self._configs[config.key] = config
            for name in (config.key, *config.aliases):
                self._lookup[name.lower()] = config.key

    def get(self, key: Optional[str]) -> Optional[EntityTypeConfig]:
        """Return the config for a key or alias, or None if unknown."""
        if not key:
            return None
        canonical = self._lookup.get(key.strip().lower())
        return self._configs.get(canonical) if canonical else None

    def require(self, key: Optional[str]) -> EntityTypeConfig:
        """
        Return the config for a key or alias.

        Raises:
            UnknownEntityTypeError: If the key is not registered
        """
        config = self.get(key)
        if config is None:
            raise UnknownEntityTypeError(key, self.keys())
        return config

    def keys(self) -> list[str]:
        return list(self._configs)

    def all(self) -> list[EntityTypeConfig]:
        return list(self._configs.values())

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


# ===================
# DEFAULT CATALOG
# ===================

CLIENTES = EntityTypeConfig(
    key="clientes",
    label="Clientes",
    fields=("nome", "cpf_cnpj", "email", "telefone", "tipo", "cidade", "estado", "cep"),
    required_fields=("nome", "cpf_cnpj"),
    natural_key=("cpf_cnpj",),
    target_table="clientes",
    record_model=ClientImportRecord,
    aliases=("client", "clients", "cliente"),
    template_headers=("Nome", "CPF/CNPJ", "Email", "Telefone", "Cidade", "Estado", "CEP"),
    template_rows=(
        ("João da Silva", "123.456.789-00", "joao@email.com", "(11) 99999-1234", "São Paulo", "SP", "01310-100"),
        ("Empresa LTDA", "12.345.678/0001-00", "contato@empresa.com", "(11) 3333-4444", "São Paulo", "SP", "01310-200"),
    ),
)

APOLICES = EntityTypeConfig(
    key="apolices",
    label="Apólices",
    fields=(
        "numero_apolice", "cliente_cpf_cnpj", "seguradora", "ramo",
        "valor_premio", "data_inicio", "data_vencimento",
    ),
    required_fields=("numero_apolice", "cliente_cpf_cnpj", "seguradora"),
    natural_key=("numero_apolice",),
    target_table="apolices",
    record_model=PolicyImportRecord,
    aliases=("policy", "policies", "apolice"),
    template_headers=(
        "Número Apólice", "Cliente CPF/CNPJ", "Seguradora", "Ramo",
        "Valor Prêmio", "Data Início", "Data Vencimento",
    ),
    template_rows=(
        ("APO-001", "123.456.789-00", "Porto Seguro", "auto", "2500.00", "2024-01-01", "2025-01-01"),
        ("APO-002", "12.345.678/0001-00", "Bradesco Seguros", "empresarial", "15000.00", "2024-02-01", "2025-02-01"),
    ),
)

COMISSOES = EntityTypeConfig(
    key="comissoes",
    label="Comissões",
    fields=("numero_apolice", "valor_bruto", "valor_liquido", "data_receita", "status"),
    required_fields=("numero_apolice", "valor_bruto"),
    natural_key=(),  # Commissions are always inserted
    target_table="comissoes",
    record_model=CommissionImportRecord,
    aliases=("commission", "commissions", "comissao"),
    template_headers=("Número Apólice", "Valor Bruto", "Valor Líquido", "Data Receita", "Status"),
    template_rows=(
        ("APO-001", "375.00", "337.50", "2024-01-15", "pendente"),
        ("APO-002", "2250.00", "2025.00", "2024-02-15", "recebida"),
    ),
)


def build_default_registry() -> EntityTypeRegistry:
    """Registry with the client, policy and commission import types."""
    return EntityTypeRegistry([CLIENTES, APOLICES, COMISSOES])


_registry: Optional[EntityTypeRegistry] = None


def get_entity_registry() -> EntityTypeRegistry:
    global _registry
    if _registry is None:
        _registry = build_default_registry()
    return _registry
