# clipit/identifier/diagnostics/collector.py
"""
Diagnostics aggregation for the identification pipeline.

Collects stage results and synthesizes the diagnostics section attached to
both response shapes.
"""

from __future__ import annotations

from typing import Dict, List
from uuid import UUID

from clipit.identifier.schema import Diagnostics, StageResult


class DiagnosticsCollector:
    """
    Accumulates StageResult objects and synthesizes global diagnostics.

    Only the runner adds results, after each stage has returned, so no
    locking is needed even though stages run concurrent branches.
    """

    def __init__(self, run_id: UUID) -> None:
        self.run_id = run_id
        self._stage_status: Dict[str, StageResult] = {}
        self._global_warnings: List[str] = []
        self._global_errors: List[str] = []
        self._global_suggested_fixes: List[str] = []

    def add_stage_result(self, result: StageResult) -> None:
        """Add a stage result and merge global fields."""
        if result.stage_name in self._stage_status:
            raise ValueError(f"Duplicate stage result for {result.stage_name}")

        self._stage_status[result.stage_name] = result

        self._global_warnings.extend(result.warnings)
        self._global_errors.extend(result.errors)
        for failure in result.failures:
            self._global_suggested_fixes.extend(failure.suggested_fixes)

    def has_degraded_stage(self) -> bool:
        """Return True if any stage reported success=False."""
        return any(not result.success for result in self._stage_status.values())

    def build(self) -> Diagnostics:
        return Diagnostics(
            stage_status=dict(self._stage_status),
            warnings=list(self._global_warnings),
            errors=list(self._global_errors),
            suggested_fixes=list(dict.fromkeys(self._global_suggested_fixes)),
        )
