# induction_engine/services/induction_service.py
"""Orchestrates the two core operations.

``run_induction``: load -> classify -> gate -> score -> allocate -> record.
``run_simulation``: load -> overlay simulation. Simulations never reach the
run recorder.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from induction_engine.config import settings
from induction_engine.errors import PersistenceError
from induction_engine.models.induction import InductionRun, InductionRunResult
from induction_engine.models.simulation import SimulationOutcome, SimulationRuleSet
from induction_engine.models.trainset import FleetFilter
from induction_engine.services import allocator, pipeline, whatif_simulator
from induction_engine.services.fact_loader import FactSnapshotLoader
from induction_engine.services.run_recorder import InductionRunRecorder, new_run_id
from induction_engine.services.weights_provider import WeightsProvider
from induction_engine.utils.explainability import render_outcome_text

logger = logging.getLogger(__name__)


class InductionService:
    def __init__(
        self,
        loader: Optional[FactSnapshotLoader] = None,
        weights_provider: Optional[WeightsProvider] = None,
        recorder: Optional[InductionRunRecorder] = None,
        max_workers: Optional[int] = None,
    ):
        self.loader = loader or FactSnapshotLoader()
        self.weights_provider = weights_provider or WeightsProvider()
        self.recorder = recorder or InductionRunRecorder()
        self.max_workers = max_workers if max_workers is not None else settings.evaluation_workers

    async def run_induction(
        self,
        fleet_filter: Optional[FleetFilter] = None,
        revenue_cap: Any = None,
        created_by: Optional[str] = None,
    ) -> InductionRunResult:
        """Decide the next operating period for the filtered fleet and record the run.

        Raises FactSourceUnavailableError if the facts cannot be loaded. A
        failure to record is not fatal: the computed run is returned with
        ``persisted=False``.
        """
        fleet_filter = fleet_filter or FleetFilter()
        warnings: List[str] = []

        if revenue_cap is None:
            revenue_cap = settings.default_revenue_cap
        cap, cap_warning = allocator.resolve_revenue_cap(revenue_cap)
        if cap_warning:
            warnings.append(cap_warning)

        snapshot = await self.loader.load(fleet_filter)
        weights = await self.weights_provider.current()
        now = datetime.now(timezone.utc)

        outcomes = await asyncio.to_thread(
            pipeline.evaluate_fleet, snapshot, weights, now, self.max_workers
        )
        allocation = allocator.allocate(outcomes, cap)

        run = InductionRun(
            run_id=new_run_id(),
            created_at=now,
            created_by=created_by,
            rule_set=settings.rule_set,
            weights_version=weights.version,
            revenue_cap=cap,
            results=allocation.ordered(),
            counts=allocation.counts(),
        )
        logger.info(
            f"Induction run {run.run_id}: {snapshot.fleet_size} trainsets, "
            f"revenue={run.counts.revenue} standby={run.counts.standby} ibl={run.counts.ibl}"
        )
        if logger.isEnabledFor(logging.DEBUG):
            for outcome in run.results:
                logger.debug(render_outcome_text(outcome))

        try:
            await self.recorder.record(run)
        except PersistenceError as e:
            logger.error(f"Induction run {run.run_id} computed but not recorded: {e}")
            return InductionRunResult(
                run=run, persisted=False, warnings=warnings, persistence_error=str(e)
            )
        return InductionRunResult(run=run, persisted=True, warnings=warnings)

    async def run_simulation(
        self,
        fleet_filter: Optional[FleetFilter] = None,
        rules: Optional[SimulationRuleSet] = None,
    ) -> List[SimulationOutcome]:
        """Recompute decisions under hypothetical toggles; nothing is recorded."""
        snapshot = await self.loader.load(fleet_filter or FleetFilter())
        return whatif_simulator.simulate_snapshot(snapshot, rules or SimulationRuleSet())
