"""
conftest.py — Shared pytest fixtures for the BSR Estimator backend test suite.

No external service fixtures are defined here. LLM calls are replaced by
in-process fake proposal generators, so every test runs offline.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Shared proposal data
# ---------------------------------------------------------------------------

@pytest.fixture
def proposal_payload():
    """
    Raw proposal as a generator would return it (snake_case JSON shape).

    Row costs:
      materials  2 bag × 50      = 100
      labor      2 hr  × 25      =  50
      equipment  1 hr  × 20      =  20
      tools      direct          =   5
    subtotal = 175, overhead 10 % = 17.5, profit 15 % on 192.5 = 28.875
    total = 221.375 → quoted 221 (half up)
    """
    return {
        "manpower": "1 Mason, 2 Helpers",
        "unit": "m³",
        "category": "Concrete Works",
        "unit_price": 0,
        "rate_breakdown": {
            "materials": [
                {"item": "OPC Cement (50kg bag)", "unit": "bag", "quantity": 2, "unit_price": 50, "cost": 100},
            ],
            "labor": [
                {"role": "Skilled Laborer / Mason", "hours": 2, "rate": 25, "cost": 50},
            ],
            "equipment": [
                {"item": "Concrete Mixer (1 bag)", "hours": 1, "rate": 20, "cost": 20},
            ],
            "tools": [
                {"item": "Trowels & floats", "cost": 5},
            ],
            "overhead": {"percentage": 10},
            "profit": {"percentage": 15},
        },
    }


@pytest.fixture
def sample_proposal(proposal_payload):
    """proposal_payload validated into a ProposalResult."""
    from app.models.boq_models import ProposalResult
    return ProposalResult.model_validate(proposal_payload)


@pytest.fixture
def sample_breakdown(sample_proposal):
    """Authoritative breakdown built from sample_proposal (total 221.375, quoted 221)."""
    from app.services.breakdown_engine import build_from_proposal
    return build_from_proposal(sample_proposal.rate_breakdown, "half_up")


# ---------------------------------------------------------------------------
# Catalog / items / session
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog():
    """Fresh seed catalog (3 manpower roles, 4 plant items, 5 materials, 3 clients)."""
    from app.services.rate_catalog import default_catalog
    return default_catalog()


@pytest.fixture
def manager():
    """ItemRecordManager with two items: one described (qty 10), one blank."""
    from app.services.item_manager import ItemRecordManager
    mgr = ItemRecordManager()
    first = mgr.add_item()
    mgr.update_field(first.id, "description", "Plain cement concrete 1:3:6 for blinding")
    mgr.update_field(first.id, "quantity", 10)
    mgr.add_item()
    return mgr


@pytest.fixture
def fake_generator(proposal_payload):
    """
    Async proposal generator returning proposal_payload and recording calls.

    ``fake_generator.calls`` holds one dict per invocation with the arguments
    the costing pass supplied.
    """
    calls = []

    async def generate(description, item_notes, general_notes, scope_of_work,
                       manpower_rates, equipment_rates, material_rates):
        calls.append({
            "description": description,
            "item_notes": item_notes,
            "general_notes": general_notes,
            "scope_of_work": scope_of_work,
            "manpower_rates": manpower_rates,
            "equipment_rates": equipment_rates,
            "material_rates": material_rates,
        })
        return proposal_payload

    generate.calls = calls
    return generate


@pytest.fixture
def failing_generator():
    """Async proposal generator that always fails like an unreachable LLM."""
    async def generate(*args):
        raise RuntimeError("All LLM providers failed. Last error: timeout")
    return generate


@pytest.fixture
def session(catalog, manager, fake_generator):
    """ProjectSession over the seed catalog and the two-item manager, fake LLM."""
    from app.services.costing_session import ProjectSession
    return ProjectSession(
        catalog=catalog,
        items=manager,
        proposal_generator=fake_generator,
        rounding="half_up",
    )
