"""
Alembic model import hook.

Importing this module ensures all SQLAlchemy models are registered on Base.metadata.
"""

from __future__ import annotations

from spend_ledger.modules.ledger.models import (  # noqa: F401
    ClassificationRuleRecord,
    InstallmentPlanRecord,
    LedgerEntryRecord,
    OwnedAccountRecord,
    OwnerAliasRecord,
    QuickTemplateRecord,
)
