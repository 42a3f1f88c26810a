"""
Estimator configuration — single source of truth for working-time
assumptions, rounding policy, LLM routing and output locations.

Import from here in all services rather than hardcoding values.
"""
from __future__ import annotations

import os

# ── Working-time assumptions (Qatar site labour) ──────────────────────────────
# Fixed for rate compatibility: 8 hrs × 26 days × 12 months = 2496 hrs/year.
HOURS_PER_DAY: int = 8
WORKING_DAYS_PER_MONTH: int = 26
MONTHS_PER_YEAR: int = 12
ANNUAL_WORKING_HOURS: int = HOURS_PER_DAY * WORKING_DAYS_PER_MONTH * MONTHS_PER_YEAR

# Gratuity accrues on basic salary divided over a 30-day month
GRATUITY_DAY_BASIS: int = 30

# Qatar Labour Law end-of-service accrual (days of basic per year)
DEFAULT_LEAVE_SETTLEMENT_DAYS: float = 21.0


# ── BOQ defaults ──────────────────────────────────────────────────────────────

UNCATEGORIZED: str = "Uncategorized"
DEFAULT_PROJECT_DURATION_DAYS: int = 180
CURRENCY: str = "QAR"


# ── Quoted unit price rounding ────────────────────────────────────────────────
# half_up:   221.5 → 222 (default, matches the seeded quote convention)
# half_even: 221.5 → 222, 220.5 → 220
# none:      keep the unrounded total
ROUNDING_POLICIES: tuple[str, ...] = ("half_up", "half_even", "none")
QUOTE_ROUNDING: str = os.getenv("QUOTE_ROUNDING", "half_up").lower()


# ── LLM routing ───────────────────────────────────────────────────────────────

LLM_PRIMARY_MODEL: str = os.getenv("LLM_PRIMARY_MODEL", "gemini/gemini-2.5-flash")
LLM_FALLBACK_MODEL: str = os.getenv("LLM_FALLBACK_MODEL", "groq/llama-3.1-70b-versatile")
LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.2"))
LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "4096"))


# ── Output ────────────────────────────────────────────────────────────────────

DOWNLOAD_DIR: str = os.getenv("DOWNLOAD_DIR", "/tmp/downloads")
EXPORT_FILE_NAME: str = "BOQ_Export"


# ── Logging ───────────────────────────────────────────────────────────────────

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"
