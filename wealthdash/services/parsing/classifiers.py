"""
Keyword Classifiers

Guess an account's type and currency from free text (an account name,
a currency cell, a formatted balance). Patterns cover the English and
Chinese labels that show up in Hong Kong bank and broker statements.

Order matters: the first matching pattern wins, so the more specific
ones come first (JP¥ before ¥).
"""

import re

from wealthdash.models.ledger import ANCHOR_CURRENCY, AccountType, Currency


_TYPE_PATTERNS: list[tuple[AccountType, re.Pattern]] = [
    (
        AccountType.INVESTMENT,
        re.compile(
            r"INVEST|STOCK|FUND|SECUR|TRADE|LONGBRIDGE|FUTU|TIGER|IBKR"
            r"|证券|股票|基金|投资|长桥|富途|老虎"
        ),
    ),
    (
        AccountType.WALLET,
        re.compile(
            r"WALLET|PAY|ALIPAY|WECHAT|OCTOPUS|PAYME|MOX|ZA|LIVI"
            r"|钱包|支付|微信|支付宝|八达通"
        ),
    ),
    (
        AccountType.PERSONAL,
        re.compile(
            r"PERSONAL|CASH|LOAN|OTHER|LEND|BORROW"
            r"|私房|借出|现金|其他"
        ),
    ),
]

_CURRENCY_PATTERNS: list[tuple[Currency, re.Pattern]] = [
    (Currency.JPY, re.compile(r"JPY|YEN|円|日元|JP¥")),
    (Currency.USD, re.compile(r"USD|US DOLLAR|美元|US\$|美金")),
    (Currency.CNY, re.compile(r"CNY|RMB|CNH|人民币|¥")),
    (Currency.EUR, re.compile(r"EUR|EURO|欧元|€")),
    (Currency.GBP, re.compile(r"GBP|POUND|英镑|£")),
    (Currency.AUD, re.compile(r"AUD|AU DOLLAR|澳元")),
    (Currency.CAD, re.compile(r"CAD|CA DOLLAR|加元")),
    (Currency.SGD, re.compile(r"SGD|SG DOLLAR|新币|坡币")),
]


def guess_account_type(name: str) -> AccountType:
    """Infer the account type from its name; Bank when nothing matches."""
    text = (name or "").upper()
    for account_type, pattern in _TYPE_PATTERNS:
        if pattern.search(text):
            return account_type
    return AccountType.BANK


def guess_currency(context: str) -> Currency:
    """Infer a currency from any surrounding text; the anchor when nothing matches."""
    text = (context or "").upper()
    for currency, pattern in _CURRENCY_PATTERNS:
        if pattern.search(text):
            return currency
    return ANCHOR_CURRENCY
