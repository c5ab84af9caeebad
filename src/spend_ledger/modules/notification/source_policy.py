from __future__ import annotations

from spend_ledger.modules.notification.parser import looks_like_transaction

ALLOWED_PACKAGES = frozenset(
    {
        "com.kakaobank.channel",
        "viva.republica.toss",
        "kr.co.kfcc.mobile",
        "com.kbstar.kbbank",
        "com.shinhan.sbanking",
        "com.hanabank.ebk.channel.android.hananbank",
        "com.kbankwith.smartbank",
        "com.wooribank.smart.npib",
        "com.ibk.neobanking",
        "com.kbcard.cxh.appcard",
        "com.shcard.smartpay",
        "com.samsung.android.spay",
        "com.samsung.android.samsungpay.gear",
    }
)

ALLOWED_PACKAGE_PREFIXES = (
    "com.kbstar.",
    "com.shinhan.",
    "com.hanabank.",
    "com.wooribank.",
    "com.ibk.",
    "com.kbcard.",
    "com.shcard.",
    "com.hyundaicard.",
    "com.lottecard.",
    "com.samsungcard.",
    "com.kakaobank.",
    "com.kakao.",
    "com.nh.",
    "viva.republica.",
)


def is_supported_source(package: str, title: str | None = None, text: str | None = None) -> bool:
    """Known banking and card apps always pass; anything else must read like a transaction."""
    normalized = (package or "").strip().lower()
    if not normalized:
        return False
    if normalized in ALLOWED_PACKAGES:
        return True
    if normalized.startswith(ALLOWED_PACKAGE_PREFIXES):
        return True
    return looks_like_transaction(title, text)
