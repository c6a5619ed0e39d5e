"""
Shared job plumbing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

Clock = Callable[[], datetime]


@dataclass
class JobResult:
    """Outcome of one job run, returned to the scheduler as JSON."""

    job: str
    success: bool = True
    message: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    status_code: int = 200

    @classmethod
    def failure(
        cls,
        job: str,
        error: str,
        details: Optional[str] = None,
        status_code: int = 500,
    ) -> "JobResult":
        """Result for a run that was aborted before dispatching anything."""
        data = {"error": error}
        if details:
            data["details"] = details
        return cls(job=job, success=False, data=data, status_code=status_code)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready response body."""
        result: dict[str, Any] = {"success": self.success, "job": self.job}
        if self.message:
            result["message"] = self.message
        result.update(self.data)
        if self.errors:
            result["errors"] = list(self.errors)
        return result


class Job(ABC):
    """A single-pass job driver."""

    name: str = ""

    @abstractmethod
    def run(self) -> JobResult:
        """Run one pass and report what happened."""
        pass
