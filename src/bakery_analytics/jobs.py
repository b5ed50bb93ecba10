"""File-backed job queue for asynchronous batch analysis."""
import logging
import math
import uuid
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel

from .cache import FileCache
from .errors import JobNotCompletedError, JobNotFoundError
from .models import AnalysisResult, JobStatus
from .orchestrator import Analyzer

logger = logging.getLogger(__name__)

PENDING_KEY = "pending_jobs"
HISTORY_KEY = "history"
PARTS = ("summary", "clients", "products", "orders", "trends")


class JobData(BaseModel):
    conversations: str
    accumulative: bool = False
    created_at: datetime
    reference_time: datetime | None = None


def paginate(items: list, page: int = 1, limit: int = 20) -> dict:
    """Slice a list into 1-based pages."""
    if limit < 1:
        raise ValueError("limit must be positive")
    page = max(1, page)
    start = (page - 1) * limit
    return {
        "items": items[start:start + limit],
        "current_page": page,
        "total_pages": math.ceil(len(items) / limit),
        "total": len(items),
    }


class JobStore:
    """Stores job status, input and results under one data directory.

    Layout: jobs/status/<id>.json, jobs/data/<id>.json, jobs/results/<id>.json,
    plus the pending queue and the transcript history in jobs/status.
    """

    def __init__(self, data_dir: Path):
        root = Path(data_dir) / "jobs"
        self.statuses = FileCache(root / "status", JobStatus)
        self.inputs = FileCache(root / "data", JobData)
        self.outputs = FileCache(root / "results", AnalysisResult)

    def _pending(self) -> list[str]:
        return self.statuses.read_json(PENDING_KEY, [])

    def start(
        self,
        conversations: str,
        accumulative: bool = False,
        now: datetime | None = None,
        reference_time: datetime | None = None,
    ) -> str:
        """Queue a transcript batch and return its job id.

        In accumulative mode the job analyzes every transcript submitted so
        far, this one included. `reference_time` is handed to the analyzer
        as "now" when the job runs.
        """
        if not isinstance(conversations, str) or not conversations.strip():
            raise TypeError("conversations must be a non-empty string")
        now = now or datetime.now()

        history = self.statuses.read_json(HISTORY_KEY, [])
        history.append(conversations)
        self.statuses.write_json(HISTORY_KEY, history)
        text = "\n".join(history) if accumulative else conversations

        job_id = uuid.uuid4().hex
        self.inputs.save(job_id, JobData(
            conversations=text, accumulative=accumulative,
            created_at=now, reference_time=reference_time,
        ))
        self.statuses.save(job_id, JobStatus(job_id=job_id, status="pending", created_at=now))
        self.statuses.write_json(PENDING_KEY, self._pending() + [job_id])
        logger.info("Queued job %s (%d chars)", job_id, len(text))
        return job_id

    def status(self, job_id: str) -> JobStatus:
        status = self.statuses.get(job_id)
        if status is None:
            raise JobNotFoundError(job_id)
        return status

    async def process_next(self, analyzer: Analyzer) -> JobStatus | None:
        """Run the oldest pending job; None when the queue is empty."""
        pending = self._pending()
        if not pending:
            return None
        job_id, rest = pending[0], pending[1:]
        self.statuses.write_json(PENDING_KEY, rest)

        status = self.status(job_id).model_copy(update={
            "status": "processing", "started_at": datetime.now(),
        })
        self.statuses.save(job_id, status)

        try:
            data = self.inputs.get(job_id)
            if data is None:
                raise JobNotFoundError(f"input data for job {job_id} is missing")
            result = await analyzer.analyze(data.conversations, data.reference_time)
            self.outputs.save(job_id, result)
            status = status.model_copy(update={"status": "completed", "completed_at": datetime.now()})
            logger.info("Job %s completed: %d clients", job_id, result.total_clients)
        except Exception as e:
            logger.exception("Job %s failed", job_id)
            status = status.model_copy(update={
                "status": "failed", "failed_at": datetime.now(), "error": str(e),
            })
        finally:
            self.inputs.delete(job_id)

        self.statuses.save(job_id, status)
        return status

    def results(self, job_id: str, part: str, page: int = 1, limit: int = 20) -> dict:
        """Return one section of a completed job's result, paginated where it is a list."""
        if part not in PARTS:
            raise ValueError(f"Invalid part {part!r}; expected one of {', '.join(PARTS)}")
        if self.status(job_id).status != "completed":
            raise JobNotCompletedError(job_id)
        result = self.outputs.get(job_id)
        if result is None:
            raise JobNotFoundError(f"results for job {job_id} are missing")

        data = result.model_dump(mode="json")
        if part == "summary":
            return {
                key: data[key]
                for key in (
                    "total_clients", "total_orders", "total_pieces", "total_revenue",
                    "avg_response_time_hours", "total_changes", "segment_stats",
                    "churn_risk_stats", "order_category_stats", "exclusion_stats",
                    "package_order_stats",
                )
            }
        if part == "trends":
            return {"trends": data["trends"]}
        return paginate(data[part], page, limit)
