"""
AI Agents for WealthDash

DESIGN DECISION: Gemini is treated as an opaque oracle behind three
narrow agents:

1. STATEMENT EXTRACTION AGENT:
   - CAN: Read statement page images and propose accounts/transactions
   - CANNOT: Touch the ledger; its output is only ever a preview
   - Every enum it returns goes through the shared coercers

2. EXCHANGE RATE AGENT:
   - CAN: Propose current rates against HKD
   - Only finite, positive rates for supported currencies survive

3. INSIGHT AGENT:
   - CAN: Comment on a summary WE compute from the ledger
   - NEVER sees raw files; NEVER produces numbers that reach the ledger

The oracle proposes, the user confirms. Nothing here persists anything.

Rate limiting: calls that fail with a quota signal are retried with
exponential backoff (2s, 4s, ... by default). Every other failure is
final on the first attempt.
"""

import json
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

import google.generativeai as genai
import structlog
from google.api_core.exceptions import ResourceExhausted
from pydantic import BaseModel, Field, field_validator
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from wealthdash.config import Settings, get_settings
from wealthdash.ledger.aggregation import spending_by_category, total_spent
from wealthdash.models.ledger import (
    ANCHOR_CURRENCY,
    Account,
    AccountDraft,
    AccountType,
    Currency,
    ExchangeRateTable,
    ExpenseCategory,
    Transaction,
    TransactionDraft,
)
from wealthdash.validation.coercion import (
    coerce_account_type,
    coerce_category,
    coerce_currency,
    coerce_text,
    normalize_date,
    parse_amount,
    valid_rate_entries,
)


logger = structlog.get_logger(__name__)

RATE_LIMIT_MESSAGE = "API Limit Exceeded. Please wait a moment and try again."
UNAVAILABLE_MESSAGE = "AI service is unavailable (API key missing)."


# =============================================================================
# ERRORS
# =============================================================================

class OracleError(Exception):
    """Base exception for oracle calls."""
    pass


class OracleUnavailableError(OracleError):
    """No API key configured, so no model to call."""
    pass


class OracleRateLimitError(OracleError):
    """Still rate limited after every retry."""
    pass


class OracleResponseError(OracleError):
    """The oracle answered, but not with usable JSON."""
    pass


def is_rate_limited(exc: BaseException) -> bool:
    """True for quota / HTTP 429 failures, the only ones worth retrying."""
    if isinstance(exc, ResourceExhausted):
        return True
    if getattr(exc, "code", None) == 429 or getattr(exc, "status", None) == 429:
        return True
    message = str(exc)
    return (
        "429" in message
        or "quota" in message.lower()
        or "RESOURCE_EXHAUSTED" in message
    )


def _extract_json(text: str) -> Any:
    """Parse the JSON payload of a reply, tolerating code fences and chatter."""
    text = (text or "").strip()
    starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
    if not starts:
        raise OracleResponseError("AI response did not contain JSON")

    start = min(starts)
    end = max(text.rfind("}"), text.rfind("]")) + 1
    try:
        return json.loads(text[start:end])
    except ValueError as e:
        raise OracleResponseError(f"AI response was not valid JSON: {e}")


def _log_retry(retry_state: RetryCallState) -> None:
    logger.warning(
        "oracle_rate_limited",
        attempt=retry_state.attempt_number,
        next_wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
    )


# =============================================================================
# RESPONSE BOUNDARY
# =============================================================================

class OracleAccount(BaseModel):
    """One account as reported by the oracle, coerced field by field."""

    name: str = "Unknown Account"
    balance: Decimal = Decimal("0")
    currency: Currency = ANCHOR_CURRENCY
    type: AccountType = AccountType.BANK

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v: Any) -> str:
        return coerce_text(v, "Unknown Account")

    @field_validator("balance", mode="before")
    @classmethod
    def _balance(cls, v: Any) -> Decimal:
        return parse_amount(v)

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v: Any) -> Currency:
        return coerce_currency(v)

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v: Any) -> AccountType:
        return coerce_account_type(v)


class OracleTransaction(BaseModel):
    """One statement row as reported by the oracle."""

    date: str = ""
    description: str = "Unknown"
    category: ExpenseCategory = ExpenseCategory.OTHER
    amount: Decimal = Decimal("0")

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, v: Any) -> str:
        return normalize_date(v)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v: Any) -> str:
        return coerce_text(v, "Unknown", max_length=500)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> ExpenseCategory:
        return coerce_category(v)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v: Any) -> Decimal:
        return parse_amount(v)


class ExtractionResponse(BaseModel):
    """
    The whole extraction reply.

    Anything that is not a list of objects is read as an empty list.
    """

    accounts: list[OracleAccount] = Field(default_factory=list)
    transactions: list[OracleTransaction] = Field(default_factory=list)

    @field_validator("accounts", "transactions", mode="before")
    @classmethod
    def _records(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]

    def to_drafts(self) -> tuple[list[AccountDraft], list[TransactionDraft]]:
        """Zero-balance accounts are dropped; every transaction is kept."""
        accounts = [
            AccountDraft(
                name=a.name,
                balance=a.balance,
                currency=a.currency,
                type=a.type,
            )
            for a in self.accounts
            if a.balance != 0
        ]
        transactions = [
            TransactionDraft(
                date=t.date,
                description=t.description,
                category=t.category,
                amount=t.amount,
            )
            for t in self.transactions
        ]
        return accounts, transactions


# =============================================================================
# AGENTS
# =============================================================================

class _GeminiAgent:
    """
    Shared model construction and the retrying call.

    A pre-built model can be injected (tests do this); otherwise one is
    built from settings when an API key is configured.
    """

    max_output_tokens: Optional[int] = None

    def __init__(self, settings: Optional[Settings] = None, model: Any = None):
        self._settings = settings or get_settings()
        self._model = model
        if self._model is None and self._settings.gemini.is_configured:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        gemini = self._settings.gemini
        genai.configure(api_key=gemini.api_key)
        self._model = genai.GenerativeModel(
            model_name=gemini.model_name,
            generation_config={
                "temperature": gemini.temperature,
                "max_output_tokens": self.max_output_tokens or gemini.max_tokens,
            }
        )

    @property
    def is_available(self) -> bool:
        return self._model is not None

    async def _generate(self, contents: Any, json_output: bool = False) -> str:
        """
        Call the model, retrying only while rate limited.

        Raises:
            OracleUnavailableError: No model configured
            OracleRateLimitError: Still rate limited after max_attempts
            OracleError: Any other failure
        """
        if self._model is None:
            raise OracleUnavailableError(UNAVAILABLE_MESSAGE)

        gemini = self._settings.gemini
        kwargs = {}
        if json_output:
            kwargs["generation_config"] = {"response_mime_type": "application/json"}

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(gemini.max_attempts),
                wait=wait_exponential(multiplier=gemini.retry_base_seconds),
                retry=retry_if_exception(is_rate_limited),
                before_sleep=_log_retry,
                reraise=True,
            ):
                with attempt:
                    response = await self._model.generate_content_async(contents, **kwargs)
                    return response.text or ""
        except Exception as e:
            if is_rate_limited(e):
                raise OracleRateLimitError(RATE_LIMIT_MESSAGE) from e
            raise OracleError(f"AI request failed: {e}") from e

        # Unreachable: AsyncRetrying either returns or reraises
        raise OracleError("AI request failed")


EXTRACTION_PROMPT = """You are an expert financial auditor specialising in Hong Kong banking documents (HSBC, BOCHK, Mox, ZA Bank, Futu, Longbridge).
Analyse the provided statement images.

## TASK 1: Extract accounts/assets
Identify the *current ending balance* of each account.
- Look for: "Ending Balance", "Closing Balance", "Net Assets", "Portfolio Value", "结余", "总资产", "账户余额", "Account Balance".
- IGNORE: "Total Deposits", "Total Credits", "Available Limit", "Loan Balance", "Balance Brought Forward", "上期结余".
- If several currencies exist (e.g. HKD Savings, USD Savings), list them as separate accounts.

## TASK 2: Extract transactions
List every transaction row.
- One amount column: the sign gives the direction (- debit, + credit).
- Two columns (Debit/Credit, Withdrawal/Deposit, 支出/存入): amount = deposit - withdrawal.
- Spending MUST be negative. Income MUST be positive.
- Ignore rows: "B/F", "Balance Brought Forward", "Total", "Subtotal", "承上页", "转下页".

## Categories
Use exactly one of: {categories}.
- Dining: restaurant, Foodpanda, Deliveroo, McDonald, cafe, 餐厅, 餐饮.
- Transport: Uber, taxi, KMB, MTR, bus, tunnel, parking, 交通, 车费.
- Groceries: ParknShop, Wellcome, AEON, market, supermarket, 7-Eleven, Circle K, 超市.
- Investment: Futu, Tiger, Longbridge, stock, securities, subscription, 证券, 股票.
- Transfer: FPS, transfer, P2P, 转账.

## Currency detection
Use one of: {currencies}.
- '$' is HKD unless the context says USD/AUD/CAD.
- '¥' is CNY (RMB) unless the context says JPY.

Account type is one of: {account_types}.

Respond with ONLY a JSON object in this exact format:
{{"accounts": [{{"name": "HSBC Savings", "balance": 12345.67, "currency": "HKD", "type": "Bank"}}],
 "transactions": [{{"date": "YYYY-MM-DD", "description": "...", "category": "Dining", "amount": -120.5}}]}}"""


class StatementExtractionAgent(_GeminiAgent):
    """
    Vision extraction of balances and transactions from statement pages.

    BOUNDARIES:
    - Returns drafts only; the import flow decides what happens next
    - Never guesses on our behalf: unknown enums become the defaults
    """

    def build_prompt(self) -> str:
        return EXTRACTION_PROMPT.format(
            categories=", ".join(c.value for c in ExpenseCategory),
            currencies=", ".join(c.value for c in Currency),
            account_types=", ".join(t.value for t in AccountType),
        )

    async def extract(
        self,
        images: Sequence[bytes],
    ) -> tuple[list[AccountDraft], list[TransactionDraft]]:
        """
        Extract accounts and transactions from JPEG page images.

        Raises:
            OracleUnavailableError: No API key configured
            OracleRateLimitError: Rate limited after every retry
            OracleResponseError: The reply was not JSON
            OracleError: Any other oracle failure
        """
        parts: list[Any] = [{"mime_type": "image/jpeg", "data": image} for image in images]
        parts.append(self.build_prompt())

        text = await self._generate(parts, json_output=True)
        data = _extract_json(text)
        if not isinstance(data, dict):
            data = {}

        response = ExtractionResponse.model_validate(data)
        accounts, transactions = response.to_drafts()

        logger.info(
            "statement_extracted",
            page_count=len(images),
            account_count=len(accounts),
            transaction_count=len(transactions),
            dropped_zero_balance=len(response.accounts) - len(accounts),
        )
        return accounts, transactions


class ExchangeRateAgent(_GeminiAgent):
    """Asks the oracle for current rates against the anchor currency."""

    max_output_tokens = 512

    async def fetch_rates(self) -> Optional[ExchangeRateTable]:
        """
        Fetch current rates as units of HKD per unit of each currency.

        Returns:
            The valid entries, or None when unavailable or nothing usable came back
        """
        if not self.is_available:
            logger.warning("exchange_rates_unavailable", reason="no api key")
            return None

        codes = [c.value for c in Currency if c != ANCHOR_CURRENCY]
        prompt = (
            f"Return a JSON object with current exchange rates to "
            f"{ANCHOR_CURRENCY.value} (Hong Kong Dollar) for: {', '.join(codes)}.\n"
            f'Example format: {{"CNY": 1.08, "USD": 7.82, "JPY": 0.052}}\n'
            f"Return ONLY the JSON."
        )

        try:
            text = await self._generate(prompt, json_output=True)
            data = _extract_json(text)
        except OracleError as e:
            logger.error("exchange_rate_fetch_failed", error=str(e))
            return None

        rates = valid_rate_entries(data)
        if not rates:
            logger.warning("exchange_rate_fetch_empty")
            return None
        return rates


class InsightAgent(_GeminiAgent):
    """
    Free-text commentary on the portfolio and on spending.

    Only ever sees summaries computed from the ledger. Falls back to a
    fixed message instead of raising.
    """

    max_output_tokens = 1024

    @property
    def _language(self) -> str:
        return self._settings.app.insight_language

    async def _commentary(self, prompt: str, empty_message: str) -> str:
        if not self.is_available:
            return "AI Analysis service is unavailable (API Key missing)."
        try:
            text = await self._generate(prompt)
        except OracleRateLimitError:
            return RATE_LIMIT_MESSAGE
        except OracleError as e:
            logger.error("insight_failed", error=str(e))
            return "AI Analysis service is temporarily unavailable."
        return text.strip() or empty_message

    async def analyze_portfolio(
        self,
        accounts: Iterable[Account],
        total_anchor: Decimal,
    ) -> str:
        """Assess diversification and currency exposure of the accounts."""
        summary = "\n".join(
            f"- {a.name} ({a.type.value}): {a.balance:,.2f} {a.currency.value}"
            for a in accounts
        )

        prompt = f"""You are a senior financial advisor. Analyse the following personal asset portfolio.

Total net worth (approx. in {ANCHOR_CURRENCY.value}): {total_anchor:,.2f}

Accounts breakdown:
{summary}

Please provide a brief, professional assessment in {self._language}.
1. Comment on the diversification between banks, investments and digital wallets.
2. Comment on the currency exposure.
3. Give one specific suggestion for optimisation.

Keep the tone encouraging but professional. Limit the response to 200 words."""

        return await self._commentary(prompt, "Unable to generate analysis.")

    async def analyze_spending(self, transactions: Iterable[Transaction]) -> str:
        """Review outflows: biggest area, avoidable spending, one tip."""
        transactions = list(transactions)
        outflows = sorted(
            (t for t in transactions if t.amount < 0),
            key=lambda t: t.amount,
        )
        breakdown = ", ".join(
            f"{c.category.value}: ${c.value:,.0f}"
            for c in spending_by_category(transactions)
        )
        top = "\n".join(
            f"{t.description}: ${abs(t.amount):,.2f}" for t in outflows[:5]
        )

        prompt = f"""You are a personal finance coach. Analyse these expenses.

Total spent: ${total_spent(transactions):,.0f}
Breakdown: {breakdown}

Top 5 transactions:
{top}

Provide a short, insightful review in {self._language}.
1. Identify the biggest spending area.
2. Flag any potentially unnecessary spending (e.g. subscriptions, dining out).
3. Give one actionable tip to save money next month.

Keep it friendly and concise (under 150 words)."""

        return await self._commentary(prompt, "Unable to generate spending analysis.")
