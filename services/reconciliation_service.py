"""
Reconciliation of validated import rows against existing records.

For each valid row the engine resolves natural-key references to other
entities, looks for an existing record and either updates it or inserts a
new one. Exactly one write happens per successful row and none on failure.

Per entity type:
    clientes   natural key = CPF/CNPJ digits; update or insert
    apolices   needs the client (by CPF/CNPJ); natural key = policy number
    comissoes  needs the policy (by number); always inserted
"""

from datetime import date, datetime, timezone
from typing import Any, Callable, Optional
import structlog

from config import get_supabase_client
from exceptions import DatabaseError, ReferenceNotFoundError
from models.import_records import (
    ClientImportRecord,
    PolicyImportRecord,
    CommissionImportRecord,
)
from models.imports import ReconcileAction, RowOutcome
from services.entity_registry import EntityTypeConfig
from utils.cell_utils import parse_amount, parse_date
from utils.text_utils import clean_text, only_digits

logger = structlog.get_logger(__name__)

CLIENTS_TABLE = "clientes"
POLICIES_TABLE = "apolices"

# Defaults applied when the row leaves a column empty
DEFAULT_POLICY_LINE = "auto"
DEFAULT_POLICY_STATUS = "vigente"
DEFAULT_COMMISSION_STATUS = "pendente"
CNPJ_LENGTH = 14


def client_kind(tax_id: str) -> str:
    """PJ (organization) for 14-digit CNPJ, PF (individual) otherwise."""
    return "PJ" if len(tax_id) == CNPJ_LENGTH else "PF"


def _iso_date(value: Any) -> Optional[str]:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ReconciliationEngine:
    """
    Insert-or-update of validated rows.

    Failures surface as exceptions for the batch runner to record:
        ReferenceNotFoundError: referenced client/policy does not exist
        DatabaseError: storage call failed
    """

    def __init__(self, db=None):
        self.db = db if db is not None else get_supabase_client()
        self._handlers: dict[str, Callable[[Any, EntityTypeConfig, Optional[str]], ReconcileAction]] = {
            "clientes": self._reconcile_client,
            "apolices": self._reconcile_policy,
            "comissoes": self._reconcile_commission,
        }

    def reconcile(
        self,
        outcome: RowOutcome,
        config: EntityTypeConfig,
        user_id: Optional[str] = None,
    ) -> ReconcileAction:
        """
        Write one validated row.

        Args:
            outcome: Valid RowOutcome from the validator
            config: Entity type being imported
            user_id: Caller, stamped as owner on new clients

        Returns:
            Whether the row inserted a new record or updated an existing one

        Raises:
            ValueError: If the outcome is invalid or the entity type has no handler
            ReferenceNotFoundError: If a referenced record does not exist
            DatabaseError: If a storage call fails
        """
        if not outcome.valid:
            raise ValueError(f"Row {outcome.row_number} did not pass validation")

        handler = self._handlers.get(config.key)
        if handler is None:
            raise ValueError(f"No reconciliation defined for entity type '{config.key}'")

        record = config.record_model.model_validate(outcome.record)
        action = handler(record, config, user_id)

        logger.debug(
            "row_reconciled",
            entity_type=config.key,
            row=outcome.row_number,
            action=action.value
        )
        return action

    # ===================
    # ENTITY HANDLERS
    # ===================

    def _reconcile_client(
        self,
        record: ClientImportRecord,
        config: EntityTypeConfig,
        user_id: Optional[str],
    ) -> ReconcileAction:
        tax_id = only_digits(record.cpf_cnpj)
        payload = {
            "nome": clean_text(record.nome),
            "email": clean_text(record.email),
            "telefone": clean_text(record.telefone),
            "tipo": client_kind(tax_id),
            "endereco": self._address(record),
        }

        existing = self._find_one(config.target_table, "cpf_cnpj", tax_id)
        if existing:
            self._update(config.target_table, existing["id"], {**payload, "updated_at": _now()})
            return ReconcileAction.UPDATED

        self._insert(config.target_table, {
            "usuario_id": user_id,
            "cpf_cnpj": tax_id,
            **payload,
            "ativo": True,
        })
        return ReconcileAction.INSERTED

    def _reconcile_policy(
        self,
        record: PolicyImportRecord,
        config: EntityTypeConfig,
        user_id: Optional[str],
    ) -> ReconcileAction:
        client_tax_id = only_digits(record.cliente_cpf_cnpj)
        client = self._find_one(CLIENTS_TABLE, "cpf_cnpj", client_tax_id)
        if not client:
            raise ReferenceNotFoundError(
                resource="client",
                message=f"Cliente não encontrado: {client_tax_id}",
                identifier=client_tax_id,
            )

        policy_number = clean_text(record.numero_apolice)
        premium = parse_amount(record.valor_premio)
        terms = {
            "seguradora": clean_text(record.seguradora),
            "ramo": clean_text(record.ramo) or DEFAULT_POLICY_LINE,
            "valor_premio": premium if premium is not None else 0.0,
            "data_vencimento": _iso_date(record.data_vencimento),
        }

        existing = self._find_one(config.target_table, "numero_apolice", policy_number)
        if existing:
            self._update(config.target_table, existing["id"], {
                **terms,
                "data_inicio": _iso_date(record.data_inicio),
                "updated_at": _now(),
            })
            return ReconcileAction.UPDATED

        self._insert(config.target_table, {
            "cliente_id": client["id"],
            "numero_apolice": policy_number,
            **terms,
            "data_inicio": _iso_date(record.data_inicio) or date.today().isoformat(),
            "status": DEFAULT_POLICY_STATUS,
        })
        return ReconcileAction.INSERTED

    def _reconcile_commission(
        self,
        record: CommissionImportRecord,
        config: EntityTypeConfig,
        user_id: Optional[str],
    ) -> ReconcileAction:
        policy_number = clean_text(record.numero_apolice)
        policy = self._find_one(POLICIES_TABLE, "numero_apolice", policy_number)
        if not policy:
            raise ReferenceNotFoundError(
                resource="policy",
                message=f"Apólice não encontrada: {policy_number}",
                identifier=policy_number or "",
            )

        gross = parse_amount(record.valor_bruto)
        gross = gross if gross is not None else 0.0
        net = parse_amount(record.valor_liquido)

        # No lookup: every commission row is a new receivable
        self._insert(config.target_table, {
            "apolice_id": policy["id"],
            "valor_bruto": gross,
            "valor_liquido": net if net is not None else gross,
            "data_receita": _iso_date(record.data_receita),
            "status": clean_text(record.status) or DEFAULT_COMMISSION_STATUS,
        })
        return ReconcileAction.INSERTED

    # ===================
    # HELPERS
    # ===================

    @staticmethod
    def _address(record: ClientImportRecord) -> Optional[dict]:
        city = clean_text(record.cidade)
        if not city:
            return None
        return {
            "cidade": city,
            "estado": clean_text(record.estado),
            "cep": clean_text(record.cep),
        }

    def _find_one(self, table: str, column: str, value: Any) -> Optional[dict]:
        try:
            result = (
                self.db.table(table)
                .select("id")
                .eq(column, value)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise DatabaseError("select", str(e), details={"table": table, column: value})
        return result.data[0] if result.data else None

    def _insert(self, table: str, payload: dict) -> None:
        try:
            self.db.table(table).insert(payload).execute()
        except Exception as e:
            raise DatabaseError("insert", str(e), details={"table": table})

    def _update(self, table: str, record_id: str, payload: dict) -> None:
        try:
            self.db.table(table).update(payload).eq("id", record_id).execute()
        except Exception as e:
            raise DatabaseError("update", str(e), details={"table": table, "id": record_id})
