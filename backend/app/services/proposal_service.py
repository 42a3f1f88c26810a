"""
Proposal generator — LLM-backed BSR proposals for BOQ line items.

generate_proposal() matches the ProposalGenerator signature consumed by
ProjectSession.run_costing_pass: it receives the item text, project context
and the marked-up rates for the pass, and returns a validated
ProposalResult whose breakdown carries rows and overhead/profit percentages
only. Totals and the quoted price are derived locally by the engine.

Also provides catalog helpers that suggest manpower and material rates.
"""
import json
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List

from pydantic import ValidationError

from app.config import DEFAULT_LEAVE_SETTLEMENT_DAYS
from app.models.boq_models import EquipmentRate, ManpowerRate, MaterialRate, ProposalResult
from app.services import llm_client

logger = logging.getLogger("bsr-llm")

ProposalGenerator = Callable[
    [str, str, str, str, List[ManpowerRate], List[EquipmentRate], List[MaterialRate]],
    Awaitable[Any],
]

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

_PROPOSAL_SCHEMA_HINT = """{
  "manpower": "1 Mason, 2 Helpers",
  "unit": "m³",
  "category": "Concrete Works",
  "unit_price": 0,
  "rate_breakdown": {
    "materials": [{"item": "", "unit": "", "quantity": 0, "unit_price": 0, "cost": 0}],
    "labor": [{"role": "", "hours": 0, "rate": 0, "cost": 0}],
    "equipment": [{"item": "", "hours": 0, "rate": 0, "cost": 0}],
    "tools": [{"item": "", "cost": 0}],
    "overhead": {"percentage": 0},
    "profit": {"percentage": 0}
  }
}"""


def parse_json_payload(raw: str) -> Dict[str, Any]:
    """Decode an LLM JSON reply, tolerating a surrounding markdown fence."""
    text = _FENCE.sub("", (raw or "").strip())
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Malformed JSON received from AI: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Invalid JSON structure received from AI.")
    return data


def validate_proposal(payload: Any) -> ProposalResult:
    """All-or-nothing validation of a proposal payload."""
    if isinstance(payload, ProposalResult):
        return payload
    if isinstance(payload, str):
        payload = parse_json_payload(payload)
    try:
        return ProposalResult.model_validate(payload)
    except ValidationError as e:
        raise ValueError(f"Invalid JSON structure received from AI: {e.error_count()} error(s)") from e


def format_rate_tables(
    manpower_rates: List[ManpowerRate],
    equipment_rates: List[EquipmentRate],
    material_rates: List[MaterialRate],
) -> str:
    """Pre-defined rate block for the prompt (rates already marked up)."""
    manpower = "\n".join(
        f"- {r.role}: {r.effective_hourly_rate:.2f} QAR/hour" for r in manpower_rates
    ) or "- None"
    equipment = "\n".join(
        f"- {r.item}: {r.hourly_rate:.2f} QAR/hour" for r in equipment_rates
    ) or "- None"
    materials = "\n".join(
        f"- {r.name}: {r.unit_price:.2f} QAR per {r.unit}" for r in material_rates
    ) or "- None"
    return (
        "**PRE-DEFINED RATES (use these where applicable):**\n"
        f"Manpower:\n{manpower}\n"
        f"Equipment:\n{equipment}\n"
        f"Materials:\n{materials}"
    )


def build_proposal_prompt(
    description: str,
    item_notes: str,
    general_notes: str,
    scope_of_work: str,
    manpower_rates: List[ManpowerRate],
    equipment_rates: List[EquipmentRate],
    material_rates: List[MaterialRate],
) -> str:
    rates = format_rate_tables(manpower_rates, equipment_rates, material_rates)
    return (
        "Analyze the following construction work description. Consider all provided context, "
        "in order of importance:\n"
        "1. Project Scope of Work (SOW): the highest-level project objective.\n"
        "2. General Project Notes: project-wide details and constraints.\n"
        "3. Item-Specific Notes: details for this specific task.\n"
        "4. PRE-DEFINED RATES: prioritize these rates for costing.\n\n"
        "Based on standard industry practice and pricing in Doha, Qatar, provide:\n"
        "1. The typical manpower required (e.g. '1 Mason, 2 Helpers').\n"
        "2. The standard measurement unit (e.g. m³, m², kg).\n"
        "3. A high-level work category (e.g. 'Earthworks', 'Concrete Works', 'MEP', 'Finishing').\n"
        "4. A detailed Breakdown of Schedule of Rates in QAR for ONE unit: materials (item, unit, "
        "quantity, unit_price, cost = quantity × unit_price), labor (role, hours, rate, cost = hours × rate), "
        "equipment (item, hours, rate, cost = hours × rate) and small tools (item, cost).\n"
        "5. A suggested overhead percentage.\n"
        "6. A suggested profit percentage.\n\n"
        f"{rates}\n\n"
        f"---\n**Project Scope of Work (SOW):**\n{scope_of_work or 'Not provided'}\n"
        f"---\n**General Project Notes:**\n{general_notes or 'None'}\n"
        f"---\n**Item-Specific Notes:**\n{item_notes or 'None'}\n"
        f"---\n**Work Description:**\n\"{description}\"\n---\n\n"
        "Return a single JSON object with exactly this shape (snake_case keys). "
        "Set the root 'unit_price' to 0; it is calculated by the estimator.\n"
        f"{_PROPOSAL_SCHEMA_HINT}"
    )


async def generate_proposal(
    description: str,
    item_notes: str,
    general_notes: str,
    scope_of_work: str,
    manpower_rates: List[ManpowerRate],
    equipment_rates: List[EquipmentRate],
    material_rates: List[MaterialRate],
) -> ProposalResult:
    """Ask the LLM for a BSR proposal and validate it."""
    prompt = build_proposal_prompt(
        description, item_notes, general_notes, scope_of_work,
        manpower_rates, equipment_rates, material_rates,
    )
    messages = [
        {"role": "system", "content": llm_client.get_system_prompt("estimator")},
        {"role": "user", "content": prompt},
    ]
    raw = await llm_client.complete(messages, json_mode=True)
    proposal = validate_proposal(raw)
    logger.info(f"Proposal received for '{description[:60]}': category={proposal.category}")
    return proposal


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------

_MANPOWER_KEYS = (
    "monthly_salary",
    "accommodation",
    "transport",
    "visa_cost_per_year",
    "annual_flight_ticket_cost",
    "leave_settlement_days_per_year",
)


def _numeric_fields(data: Dict[str, Any], keys) -> Dict[str, float]:
    result: Dict[str, float] = {}
    for key in keys:
        if key in data:
            try:
                result[key] = float(data[key])
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-numeric AI value for {key}: {data[key]!r}")
    return result


async def suggest_manpower_rate(role: str) -> Dict[str, float]:
    """Typical monthly/yearly cost components for a trade in Doha (partial record)."""
    prompt = (
        f'For a "{role}" in the construction industry in Doha, Qatar, provide a typical monthly '
        "and yearly cost breakdown as a JSON object with these numeric keys:\n"
        "monthly_salary: typical basic monthly salary in QAR.\n"
        "accommodation: monthly allowance for shared accommodation.\n"
        "transport: monthly allowance for transport to/from work sites.\n"
        "visa_cost_per_year: visa renewal cost averaged per year.\n"
        "annual_flight_ticket_cost: cost of one flight ticket home per year.\n"
        "leave_settlement_days_per_year: days of basic salary accrued as end-of-service gratuity "
        f"per year (standard is {DEFAULT_LEAVE_SETTLEMENT_DAYS:g} in Qatar)."
    )
    messages = [
        {"role": "system", "content": llm_client.get_system_prompt("rate_analyst")},
        {"role": "user", "content": prompt},
    ]
    data = parse_json_payload(await llm_client.complete(messages, json_mode=True))
    return _numeric_fields(data, _MANPOWER_KEYS)


async def suggest_material_rate(material_name: str) -> Dict[str, Any]:
    """Standard unit and typical QAR unit price for a material (partial record)."""
    prompt = (
        f'For the construction material "{material_name}" in Doha, Qatar, return a JSON object with:\n'
        "unit: the standard measurement unit (e.g. 'bag', 'm³', 'ton', 'kg').\n"
        "unit_price: a typical market price for that unit in QAR."
    )
    messages = [
        {"role": "system", "content": llm_client.get_system_prompt("rate_analyst")},
        {"role": "user", "content": prompt},
    ]
    data = parse_json_payload(await llm_client.complete(messages, json_mode=True))
    result: Dict[str, Any] = _numeric_fields(data, ("unit_price",))
    if isinstance(data.get("unit"), str):
        result["unit"] = data["unit"]
    return result
