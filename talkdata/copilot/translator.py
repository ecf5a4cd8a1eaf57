"""
Translator -- natural-language question -> ``TranslationResult``.

An ordered chain of handlers; the first one that returns a result wins.
There is no scoring across handlers.  When nothing matches the question is
``Untranslatable`` and the caller is pointed at ``/schema``.

Chain order:
  1. largest_transaction
  2. recipient_total
  3. list_all
  4. llm   (only when LLM_PROVIDER is not "mock")
"""
from __future__ import annotations

from functools import partial
from typing import Sequence

from talkdata.copilot.handlers import (
    Clock,
    Handler,
    LargestTransactionHandler,
    ListAllHandler,
    RecipientDirectory,
    RecipientLookup,
    RecipientTotalHandler,
)
from talkdata.copilot.llm_client import call_llm
from talkdata.copilot.llm_handler import LLMHandler
from talkdata.copilot.translation import TranslationResult, Untranslatable
from talkdata.core.config import Settings, get_settings
from talkdata.core.logging import get_logger
from talkdata.core.utils import today
from talkdata.db.connection import Database
from talkdata.db.schema import SchemaCatalog
from talkdata.governance.semantic_loader import BankingModel

logger = get_logger(__name__)


class Translator:
    def __init__(self, handlers: Sequence[Handler]):
        self.handlers = list(handlers)

    def translate(self, question: str, schema: SchemaCatalog) -> TranslationResult:
        for handler in self.handlers:
            result = handler.try_translate(question, schema)
            if result is not None:
                logger.info("Translator[%s] -> %s", handler.name, result.kind)
                return result
        logger.info("Translator: no handler matched")
        return Untranslatable()


def build_translator(
    model: BankingModel,
    database: Database | None = None,
    settings: Settings | None = None,
    clock: Clock = today,
    lookup: RecipientLookup | None = None,
) -> Translator:
    """Assemble the default handler chain."""
    settings = settings or get_settings()
    if lookup is None:
        if database is None:
            raise ValueError("build_translator needs a database or an explicit recipient lookup")
        lookup = RecipientDirectory(database, model.recipients).find

    handlers: list[Handler] = [
        LargestTransactionHandler(model, clock),
        RecipientTotalHandler(model, lookup, clock),
        ListAllHandler(model, settings.sql_row_limit),
    ]

    provider = settings.llm_provider.lower()
    if provider != "mock":
        dialect = database.dialect if database is not None else "sqlite"
        handlers.append(
            LLMHandler(
                call=partial(call_llm, provider=provider, timeout=settings.llm_timeout_seconds),
                timeout=settings.llm_timeout_seconds,
                dialect=dialect,
                max_rows=settings.sql_row_limit,
            )
        )
        logger.info("LLM handler enabled  provider=%s", provider)

    return Translator(handlers)
