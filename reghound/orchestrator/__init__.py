# Client for the Orchestrator web service that schedules the runbooks
# RegHound is typically driven from. Independent of the registry engine.

from .client import OrchestratorClient, OrchestratorError, build_auth
from .models import Job, RunbookInstance

__all__ = ["OrchestratorClient", "OrchestratorError", "build_auth", "Job", "RunbookInstance"]
