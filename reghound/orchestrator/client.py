# Orchestrator web service client.
#
# Read-only access to jobs and runbook instances through the service's
# OData endpoint (Orchestrator.svc). Responses are Atom XML; entries are
# parsed with ElementTree into the dataclasses in .models.

import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Union
from urllib.parse import urljoin

import requests
from requests.auth import AuthBase, HTTPBasicAuth

from ..utils.date_parser import parse_iso_date
from ..utils.logging import debug
from .models import Job, RunbookInstance

NS = {
    "atom": "http://www.w3.org/2005/Atom",
    "d": "http://schemas.microsoft.com/ado/2007/08/dataservices",
    "m": "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata",
}
_RELATED = "http://schemas.microsoft.com/ado/2007/08/dataservices/related/"
_XML_BASE = "{http://www.w3.org/XML/1998/namespace}base"

# RunbookInstance field -> related link title
_INSTANCE_LINKS = {
    "url_runbook": "Runbook",
    "url_job": "Job",
    "url_parameters": "Parameters",
    "url_activity_instances": "ActivityInstances",
    "url_runbook_server": "RunbookServer",
}


class OrchestratorError(Exception):
    """Web service request failed or returned an unexpected document"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def build_auth(username: Optional[str], password: Optional[str], domain: Optional[str] = None) -> Optional[AuthBase]:
    """Basic auth for DOMAIN\\user, or None to rely on anonymous access."""
    if not username:
        return None
    user = f"{domain}\\{username}" if domain else username
    return HTTPBasicAuth(user, password or "")


def _service_root(url: str) -> str:
    return url if url.endswith("/") else url + "/"


class OrchestratorClient:
    """
    Thin client for the Orchestrator OData web service.

    Usage:
        client = OrchestratorClient("http://scorch:81/Orchestrator2012/Orchestrator.svc",
                                    auth=build_auth("admin", "secret", "CORP"))
        job = client.get_job("9f1a...")
        for instance in client.get_runbook_instances(job):
            print(instance.status)
    """

    def __init__(
        self,
        service_url: str,
        auth: Optional[AuthBase] = None,
        timeout: int = 30,
        verify: Union[bool, str] = True,
        session: Optional[requests.Session] = None,
    ):
        self.service_url = _service_root(service_url)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = auth
        self.session.verify = verify
        self.session.headers.update({"Accept": "application/atom+xml,application/xml"})

    def _get(self, uri: str) -> ET.Element:
        url = urljoin(self.service_url, uri)
        debug(f"GET {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise OrchestratorError(f"Request to {url} failed: {e}") from e

        if response.status_code == 404:
            raise OrchestratorError(f"Not found: {url}", status_code=404)
        if response.status_code in (401, 403):
            raise OrchestratorError(f"Access denied ({response.status_code}): {url}", status_code=response.status_code)
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise OrchestratorError(str(e), status_code=response.status_code) from e

        try:
            return ET.fromstring(response.content)
        except ET.ParseError as e:
            raise OrchestratorError(f"Malformed response from {url}: {e}") from e

    def get_job(self, job_id: str) -> Job:
        """Fetch one job by its GUID."""
        root = self._get(f"Jobs(guid'{job_id}')")
        if root.tag != f"{{{NS['atom']}}}entry":
            raise OrchestratorError(f"Expected an Atom entry for job {job_id}, got {root.tag}")
        return parse_job(root, self.service_url)

    def get_runbook_instances(self, job: Union[Job, str]) -> List[RunbookInstance]:
        """All runbook instances spawned by `job` (a Job or a job GUID)."""
        job_id = job.id if isinstance(job, Job) else job
        root = self._get(f"Jobs(guid'{job_id}')/RunbookInstances")
        if root.tag != f"{{{NS['atom']}}}feed":
            raise OrchestratorError(f"Expected an Atom feed for job {job_id}, got {root.tag}")
        base = root.get(_XML_BASE, self.service_url)
        return [parse_runbook_instance(entry, base) for entry in root.findall("atom:entry", NS)]

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "OrchestratorClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# =============================================================================
# Atom parsing
# =============================================================================


def _text(element: ET.Element, path: str) -> Optional[str]:
    found = element.find(path, NS)
    if found is None or found.get(f"{{{NS['m']}}}null") == "true":
        return None
    return found.text


def _properties(entry: ET.Element) -> Dict[str, Optional[str]]:
    props = entry.find("atom:content/m:properties", NS)
    if props is None:
        # Media-link entries keep properties outside <content>
        props = entry.find("m:properties", NS)
    if props is None:
        raise OrchestratorError("Atom entry has no properties")
    out: Dict[str, Optional[str]] = {}
    for child in props:
        name = child.tag.split("}", 1)[-1]
        out[name] = None if child.get(f"{{{NS['m']}}}null") == "true" else child.text
    return out


def _related_links(entry: ET.Element, base: str) -> Dict[str, str]:
    links = {}
    for link in entry.findall("atom:link", NS):
        rel = link.get("rel", "")
        if rel.startswith(_RELATED):
            links[rel[len(_RELATED):]] = urljoin(base, link.get("href", ""))
    return links


def _atom_metadata(entry: ET.Element, base: str) -> Dict[str, object]:
    category = entry.find("atom:category", NS)
    url = _text(entry, "atom:id")
    if not url:
        raise OrchestratorError("Atom entry has no id")
    return {
        "url": url,
        "url_service": base,
        "published": parse_iso_date(_text(entry, "atom:published")),
        "updated": parse_iso_date(_text(entry, "atom:updated")),
        "category": category.get("term") if category is not None else None,
    }


def parse_job(entry: ET.Element, service_url: str) -> Job:
    base = entry.get(_XML_BASE, service_url)
    props = _properties(entry)
    if not props.get("Id"):
        raise OrchestratorError("Job entry has no Id")
    return Job(
        id=props["Id"],
        runbook_id=props.get("RunbookId"),
        status=props.get("Status"),
        creation_time=parse_iso_date(props.get("CreationTime")),
        last_modified_time=parse_iso_date(props.get("LastModifiedTime")),
        **_atom_metadata(entry, base),
    )


def parse_runbook_instance(entry: ET.Element, base: str) -> RunbookInstance:
    base = entry.get(_XML_BASE, base)
    props = _properties(entry)
    if not props.get("Id"):
        raise OrchestratorError("RunbookInstance entry has no Id")
    links = _related_links(entry, base)
    return RunbookInstance(
        id=props["Id"],
        runbook_id=props.get("RunbookId"),
        job_id=props.get("JobId"),
        runbook_server_id=props.get("RunbookServerId"),
        status=props.get("Status"),
        creation_time=parse_iso_date(props.get("CreationTime")),
        completion_time=parse_iso_date(props.get("CompletionTime")),
        **{field: links.get(title) for field, title in _INSTANCE_LINKS.items()},
        **_atom_metadata(entry, base),
    )
