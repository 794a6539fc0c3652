import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from agent_client import AgentError, call_agent
from dashboard import expenses_by_category, summarize

logger = logging.getLogger(__name__)

INSIGHTS_AGENT_ID = os.getenv("INSIGHTS_AGENT_ID", "budget-insights-agent")

NO_TRANSACTIONS_MESSAGE = "No transactions to analyze. Add some transactions first."
AGENT_FAILURE_MESSAGE = "Failed to generate insights. Please try again."
PARSE_FAILURE_MESSAGE = "Failed to parse insights response. Please try again."

RESPONSE_SCHEMA = {
    "status": "success",
    "result": {
        "categorized_transactions": [
            {"id": "string", "description": "string", "amount": 0, "category": "string", "type": "income|expense"}
        ],
        "summary": {
            "total_income": 0,
            "total_expenses": 0,
            "net_balance": 0,
            "top_spending_category": "string",
        },
        "insights": "string",
        "tips": ["string"],
    },
    "confidence": 0.0,
    "metadata": {},
}

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class InsightResponse(BaseModel):
    """What the agent is asked to return. Every field is optional and extra keys are kept."""

    model_config = ConfigDict(extra="allow")

    categorized_transactions: Any = None
    summary: Any = None
    insights: Any = None
    tips: Any = None
    confidence: Any = None
    metadata: Any = None

    def narrative(self) -> Optional[str]:
        if self.insights is None:
            return None
        return self.insights if isinstance(self.insights, str) else json.dumps(self.insights)

    def tip_texts(self) -> List[str]:
        tips = self.tips
        if tips is None:
            return []
        if not isinstance(tips, list):
            tips = [tips]
        return [_tip_text(tip) for tip in tips if tip is not None]

    def summary_totals(self) -> Dict[str, float]:
        """Numeric totals from ``summary``; keys that are missing or not numbers are left out."""
        if not isinstance(self.summary, dict):
            return {}
        totals = {}
        for key in ("total_income", "total_expenses", "net_balance"):
            value = _as_number(self.summary.get(key))
            if value is not None:
                totals[key] = value
        return totals

    def confidence_ratio(self) -> Optional[float]:
        value = _as_number(self.confidence)
        if value is None:
            return None
        return value / 100 if value > 1 else value


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _tip_text(tip) -> str:
    if isinstance(tip, str):
        return tip
    if isinstance(tip, dict):
        parts = [str(tip[key]) for key in ("title", "tip", "description", "text") if tip.get(key)]
        if parts:
            return ": ".join(parts)
    return json.dumps(tip) if isinstance(tip, (dict, list)) else str(tip)


def build_transaction_summary(transactions) -> dict:
    totals = summarize(transactions)
    return {
        "total_income": totals["income"],
        "total_expenses": totals["expenses"],
        "net_balance": totals["net"],
        "transaction_count": totals["count"],
        "expenses_by_category": expenses_by_category(transactions),
        "transactions": [t.model_dump(mode="json") for t in transactions],
    }


def build_insights_prompt(transactions) -> str:
    summary = json.dumps(build_transaction_summary(transactions), indent=2)
    schema = json.dumps(RESPONSE_SCHEMA, indent=2)
    return (
        "You are a personal finance assistant. Analyze the user's transactions below.\n"
        "Categorize each transaction, total income and expenses, explain the main spending "
        "patterns in plain language and give practical tips to improve their budget.\n\n"
        f"Transaction data:\n{summary}\n\n"
        "Respond with JSON only, using exactly this structure:\n"
        f"{schema}"
    )


def parse_llm_json(text, fallback=None):
    """
    Best-effort JSON decode of model output.

    Tries the text as-is, then the first fenced code block, then the outermost
    ``{...}`` span. Returns ``fallback`` when none of them decode.
    """
    if not isinstance(text, str) or not text.strip():
        return fallback

    candidates = [text.strip()]
    fenced = _FENCE_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    return fallback


def _as_object(value):
    if isinstance(value, dict):
        return value
    return parse_llm_json(value)


def extract_insights(reply: dict) -> Optional[InsightResponse]:
    """Pull an ``InsightResponse`` out of an agent reply, or ``None`` if there is no ``result``."""

    if not isinstance(reply, dict):
        return None

    parsed = _as_object(reply.get("response"))
    if not (isinstance(parsed, dict) and "result" in parsed):
        parsed = _as_object(reply.get("raw_response"))
    if not (isinstance(parsed, dict) and "result" in parsed):
        return None

    result = _as_object(parsed["result"])
    if not isinstance(result, dict):
        return None

    # confidence/metadata sit beside result in the envelope
    for key in ("confidence", "metadata"):
        if key in parsed and key not in result:
            result = {**result, key: parsed[key]}

    return InsightResponse.model_validate(result)


@dataclass
class InsightsPanel:
    """Request/loading/error state behind the Insights tab."""

    insights: Optional[InsightResponse] = None
    error: Optional[str] = None
    loading: bool = False

    def generate(self, transactions, agent: Callable[[str, str], dict] = call_agent) -> Optional[InsightResponse]:
        if self.loading:
            return None

        if not transactions:
            self.error = NO_TRANSACTIONS_MESSAGE
            return None

        self.loading = True
        self.error = None
        try:
            reply = agent(build_insights_prompt(transactions), INSIGHTS_AGENT_ID)
        except AgentError as exc:
            logger.error("Insights request failed: %s", exc)
            self.error = AGENT_FAILURE_MESSAGE
            return None
        except Exception:
            logger.exception("Insights request failed unexpectedly")
            self.error = AGENT_FAILURE_MESSAGE
            return None
        finally:
            self.loading = False

        insights = extract_insights(reply)
        if insights is None:
            self.error = PARSE_FAILURE_MESSAGE
            return None

        self.insights = insights
        return insights

    def dismiss_error(self) -> None:
        self.error = None
