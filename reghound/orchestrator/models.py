# Orchestration-service object model.
#
# Jobs and runbook instances as exposed by the Orchestrator OData web
# service. Every entry carries the same Atom metadata (entry URL, service
# root, publish/update times, category); the typed properties differ.

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional


def _jsonable(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, datetime) else v for k, v in data.items()}


@dataclass
class Job:
    """A runbook job (one request to run a runbook)."""

    url: str
    url_service: str
    id: str
    runbook_id: Optional[str] = None
    status: Optional[str] = None
    creation_time: Optional[datetime] = None
    last_modified_time: Optional[datetime] = None
    published: Optional[datetime] = None
    updated: Optional[datetime] = None
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass
class RunbookInstance:
    """One execution of a runbook on a runbook server, spawned by a job."""

    url: str
    url_service: str
    id: str
    url_runbook: Optional[str] = None
    url_job: Optional[str] = None
    url_parameters: Optional[str] = None
    url_activity_instances: Optional[str] = None
    url_runbook_server: Optional[str] = None
    published: Optional[datetime] = None
    updated: Optional[datetime] = None
    category: Optional[str] = None
    runbook_id: Optional[str] = None
    job_id: Optional[str] = None
    runbook_server_id: Optional[str] = None
    status: Optional[str] = None
    creation_time: Optional[datetime] = None
    completion_time: Optional[datetime] = None

    @property
    def is_finished(self) -> bool:
        return self.completion_time is not None

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))
