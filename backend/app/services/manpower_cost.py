"""
Fully-burdened manpower cost (Qatar basis).

Depends on app.config only, so models can compute rates on read.
"""

from app.config import ANNUAL_WORKING_HOURS, GRATUITY_DAY_BASIS, MONTHS_PER_YEAR


def calculate_effective_hourly_rate(
    monthly_salary: float,
    accommodation: float,
    transport: float,
    visa_cost_per_year: float,
    annual_flight_ticket_cost: float,
    leave_settlement_days_per_year: float,
) -> float:
    """
    Fully-burdened cost of one hour of a worker's time.

        monthly_direct   = salary + accommodation + transport
        annual_direct    = monthly_direct × 12
        gratuity         = (salary / 30) × leave_settlement_days
        annual_indirect  = visa + flight ticket + gratuity
        rate             = (annual_direct + annual_indirect) / 2496
    """
    monthly_direct = monthly_salary + accommodation + transport
    annual_direct = monthly_direct * MONTHS_PER_YEAR

    gratuity_per_year = (monthly_salary / GRATUITY_DAY_BASIS) * leave_settlement_days_per_year
    annual_indirect = visa_cost_per_year + annual_flight_ticket_cost + gratuity_per_year

    total_annual_cost = annual_direct + annual_indirect
    return total_annual_cost / ANNUAL_WORKING_HOURS if ANNUAL_WORKING_HOURS > 0 else 0.0
