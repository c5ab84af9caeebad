from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from spend_ledger.modules.ledger.domain import OwnedAccount, ParsedRecord

TRANSFER_KEYWORDS = ("이체", "계좌이동", "송금", "자체이체", "본인계좌", "transfer")

_NON_DIGIT_RE = re.compile(r"\D")


def normalize_name(value: str | None) -> str:
    return (value or "").lower().replace(" ", "").replace("-", "").replace("_", "").strip()


def normalize_mask(value: str | None) -> str:
    return _NON_DIGIT_RE.sub("", value or "")


class InternalTransferDetector:
    """Decide whether a record moves money between the user's own accounts."""

    def __init__(self, keywords: Sequence[str] = TRANSFER_KEYWORDS) -> None:
        self.keywords = tuple(normalize_name(k) for k in keywords)

    def is_internal_transfer(
        self,
        record: ParsedRecord,
        owned_accounts: Sequence[OwnedAccount],
        owner_aliases: Iterable[str],
    ) -> bool:
        aliases = {
            a
            for a in (normalize_name(v) for v in [*owner_aliases, *(o.owner_name for o in owned_accounts)])
            if a
        }
        owned_masks = {m for m in (normalize_mask(o.account_mask) for o in owned_accounts) if m}

        from_mask = normalize_mask(record.from_account_mask)
        to_mask = normalize_mask(record.to_account_mask)
        if from_mask and to_mask and from_mask in owned_masks and to_mask in owned_masks:
            return True

        description = normalize_name(record.description)
        has_keyword = any(k in description for k in self.keywords)
        if not has_keyword:
            return False

        own_mask = normalize_mask(record.account_mask)
        if own_mask and own_mask in owned_masks and normalize_name(record.counterparty_name) in aliases:
            return True

        return any(alias in description for alias in aliases)
