"""Jenkins CI queries and build triggers."""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from kopsai.core.errors import TaskValidationError

from .http import HTTPPlugin

JOBS_TREE = "jobs[name,url,color,builds[number,result,timestamp]]"


class JenkinsAction(str, Enum):
    JOBS = "jobs"
    BUILD = "build"
    STATUS = "status"
    LOGS = "logs"


class JenkinsAgent(HTTPPlugin):
    """Query Jenkins build status and trigger builds."""

    name = "jenkins_agent"
    description = "Query Jenkins build status and trigger deployments"
    version = "1.0.0"

    def base_url(self) -> str | None:
        return self.config.jenkins_url

    def _auth(self) -> tuple[str, str] | None:
        if self.config.jenkins_username and self.config.jenkins_token:
            return (self.config.jenkins_username, self.config.jenkins_token)
        return None

    def _probe(self) -> bool:
        if not self.base_url():
            return False
        self._get_json("/api/json")
        return True

    def execute(self, action: Any, options: Mapping[str, Any]) -> dict[str, Any]:
        jenkins_action = self.parse_action(action, JenkinsAction)
        if jenkins_action is JenkinsAction.JOBS:
            return self.list_jobs()

        job_name = options.get("job_name")
        if not job_name:
            raise TaskValidationError(f"jenkins {jenkins_action.value} requires 'job_name'")
        if jenkins_action is JenkinsAction.BUILD:
            return self.trigger_build(job_name, options.get("parameters") or {})
        if jenkins_action is JenkinsAction.STATUS:
            return self.build_status(job_name, options.get("build_number"))
        return self.build_logs(job_name, options.get("build_number"))

    def list_jobs(self) -> dict[str, Any]:
        data = self._get_json("/api/json", {"tree": JOBS_TREE})
        return {
            "jobs": [
                {
                    "name": job.get("name"),
                    "url": job.get("url"),
                    "status": job.get("color"),
                    "last_build": (job.get("builds") or [None])[0],
                }
                for job in data.get("jobs", [])
            ]
        }

    def trigger_build(self, job_name: str, parameters: Mapping[str, Any]) -> dict[str, Any]:
        path = f"/job/{job_name}/buildWithParameters" if parameters else f"/job/{job_name}/build"
        with self._client() as client:
            resp = client.post(path, data=dict(parameters) or None)
        if resp.status_code == 201:
            return {
                "success": True,
                "job_name": job_name,
                "message": "Build triggered successfully",
            }
        return {
            "success": False,
            "job_name": job_name,
            "error": f"HTTP {resp.status_code}: {resp.text}",
        }

    @staticmethod
    def _build_ref(job_name: str, build_number: Any) -> str:
        return f"/job/{job_name}/{build_number or 'lastBuild'}"

    def build_status(self, job_name: str, build_number: Any = None) -> dict[str, Any]:
        data = self._get_json(f"{self._build_ref(job_name, build_number)}/api/json")
        return {
            "job_name": job_name,
            "build_number": data.get("number"),
            "result": data.get("result"),
            "timestamp": data.get("timestamp"),
            "duration": data.get("duration"),
            "url": data.get("url"),
        }

    def build_logs(self, job_name: str, build_number: Any = None) -> dict[str, Any]:
        logs = self._get_text(f"{self._build_ref(job_name, build_number)}/consoleText")
        return {"job_name": job_name, "build_number": build_number, "logs": logs}
