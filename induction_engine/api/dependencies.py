# induction_engine/api/dependencies.py
from induction_engine.services.induction_service import InductionService
from induction_engine.services.run_recorder import InductionRunRecorder
from induction_engine.services.scenario_store import SimulationScenarioStore
from induction_engine.services.weights_provider import WeightsProvider


def get_induction_service() -> InductionService:
    return InductionService()


def get_run_recorder() -> InductionRunRecorder:
    return InductionRunRecorder()


def get_scenario_store() -> SimulationScenarioStore:
    return SimulationScenarioStore()


def get_weights_provider() -> WeightsProvider:
    return WeightsProvider()
