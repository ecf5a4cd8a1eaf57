"""
Query service -- orchestrates schema -> translate -> guard -> execute -> audit -> shape.

One ``QueryService`` is built per process around an explicit ``Database``
handle; requests share no mutable state beyond the engine pool.  The audit
write is handed to a deferral hook (FastAPI ``BackgroundTasks.add_task``)
when one is given, so it never sits on the response path; without a hook
it runs inline but still fail-soft.
"""
from __future__ import annotations

from typing import Any, Callable

from talkdata.copilot.shaper import QueryResponse, shape
from talkdata.copilot.translation import Untranslatable
from talkdata.copilot.translator import Translator, build_translator
from talkdata.core.config import Settings, get_settings
from talkdata.core.logging import get_logger
from talkdata.core.utils import timer
from talkdata.db.audit_log import KIND_MUTATION, KIND_QUERY, KIND_REJECTED, AuditRecorder
from talkdata.db.connection import Database
from talkdata.db.executor import QueryExecutor
from talkdata.db.schema import SchemaCatalog, SchemaCatalogLoader
from talkdata.governance.semantic_loader import BankingModel, load_banking_model
from talkdata.governance.statement_guard import Rejection, StatementGuard

logger = get_logger(__name__)

Defer = Callable[..., Any]


class QueryService:
    def __init__(
        self,
        catalog: SchemaCatalogLoader,
        translator: Translator,
        guard: StatementGuard,
        executor: QueryExecutor,
        audit: AuditRecorder,
    ):
        self.catalog = catalog
        self.translator = translator
        self.guard = guard
        self.executor = executor
        self.audit = audit

    def schema(self) -> SchemaCatalog:
        """Load the catalog; raises ``StorageError`` if the DB is unreachable."""
        return self.catalog.load()

    def ask(self, question: str, defer: Defer | None = None) -> QueryResponse:
        """End-to-end: question -> QueryResponse.

        Parameters
        ----------
        question : str
            Natural-language question.
        defer : callable, optional
            ``defer(fn, *args)`` schedules the audit write after the
            response (e.g. ``BackgroundTasks.add_task``).
        """
        with timer() as t:
            schema = self.schema()
            translation = self.translator.translate(question, schema)

            if isinstance(translation, Untranslatable):
                response = shape(question, translation)
            else:
                decision = self.guard.validate(translation.sql, translation.params)
                if isinstance(decision, Rejection):
                    self._audit(question, KIND_REJECTED, defer)
                    response = shape(question, translation, rejection=decision)
                else:
                    execution = self.executor.execute(decision)
                    kind = KIND_QUERY if decision.is_read_only else KIND_MUTATION
                    self._audit(question, kind, defer)
                    response = shape(question, translation, execution)

        logger.info(
            "QueryService.ask | question=%s | ok=%s | %dms",
            question[:80], response.success, t["elapsed_ms"],
        )
        return response

    def _audit(self, question: str, kind: str, defer: Defer | None) -> None:
        if defer is not None:
            defer(self.audit.record, question, kind)
        else:
            self.audit.record(question, kind)


def build_service(
    database: Database,
    settings: Settings | None = None,
    model: BankingModel | None = None,
    translator: Translator | None = None,
) -> QueryService:
    """Wire the default pipeline around *database*."""
    settings = settings or get_settings()
    model = model or load_banking_model()

    audit = AuditRecorder(database)
    try:
        audit.ensure_table()
    except Exception:
        logger.warning("Could not ensure audit table (DB may not be available)")

    return QueryService(
        catalog=SchemaCatalogLoader(database, ttl_seconds=settings.schema_cache_ttl_seconds),
        translator=translator or build_translator(model, database=database, settings=settings),
        guard=StatementGuard(model.security, allow_mutations=settings.allow_mutations),
        executor=QueryExecutor(database, timeout_ms=settings.query_timeout_ms),
        audit=audit,
    )
