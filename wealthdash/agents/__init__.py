"""AI Agents package."""

from wealthdash.agents.ai_agents import (
    ExchangeRateAgent,
    ExtractionResponse,
    InsightAgent,
    OracleError,
    OracleRateLimitError,
    OracleResponseError,
    OracleUnavailableError,
    StatementExtractionAgent,
    is_rate_limited,
)

__all__ = [
    "ExchangeRateAgent",
    "ExtractionResponse",
    "InsightAgent",
    "OracleError",
    "OracleRateLimitError",
    "OracleResponseError",
    "OracleUnavailableError",
    "StatementExtractionAgent",
    "is_rate_limited",
]
