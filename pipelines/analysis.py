"""
pipelines/analysis.py

Simulated FHE fairness analysis.

No homomorphic computation happens here: after an artificial delay the
fixed report below is attached to the case through the case store.
"""

from __future__ import annotations

import asyncio
import logging

from storage.case_store import CaseStore

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 3.0

ANALYSIS_LINES = [
    "Fairness Score: 82%",
    "Sentencing Disparity: Low",
    "Prosecutor Bias: Moderate",
    "Recommended Action: Review charging guidelines",
]


def analysis_report() -> str:
    return "\n".join(ANALYSIS_LINES)


async def run_fhe_analysis(
    store: CaseStore,
    case_id: str,
    delay: float = DEFAULT_DELAY_SECONDS,
) -> str:
    """
    Wait *delay* seconds, then attach the analysis report to *case_id*.

    Returns the attached text.  Errors from ``CaseStore.attach_analysis``
    propagate unchanged.
    """
    logger.info("Running FHE analysis for case %s (delay=%.1fs)", case_id, delay)
    if delay > 0:
        await asyncio.sleep(delay)
    report = analysis_report()
    await store.attach_analysis(case_id, report)
    return report
