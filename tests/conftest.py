"""
Pytest configuration and shared fixtures.
"""

import pytest

from jobtracker.coordinator import JobCoordinator
from jobtracker.logger import get_logger, reset_logger
from jobtracker.models import Job, JobImage, JobStatus, JobTag
from jobtracker.store import MemoryRecordStore, SQLRecordStore


@pytest.fixture(autouse=True)
def quiet_logger(tmp_path):
    """Route the global logger to a temp dir with no console output."""
    reset_logger()
    logger = get_logger(log_dir=tmp_path / "logs", enable_console=False)
    yield logger
    reset_logger()


@pytest.fixture
def remote_tag() -> JobTag:
    return JobTag(id="tag-remote", name="Remote", color="#3b82f6")


@pytest.fixture
def contract_tag() -> JobTag:
    return JobTag(id="tag-contract", name="Contract", color="#8b5cf6")


@pytest.fixture
def make_job():
    """Factory for valid jobs; keyword arguments override fields."""
    def _make(job_id: str = "job-1", **overrides) -> Job:
        fields = dict(
            id=job_id,
            title="Software Engineer",
            company="Acme Corp",
            location="San Francisco, CA",
            application_date="2024-03-01",
            status=JobStatus.APPLIED,
            notes="",
            created_at=1_700_000_000_000,
            updated_at=1_700_000_000_000,
        )
        fields.update(overrides)
        return Job(**fields)
    return _make


@pytest.fixture
def sample_jobs(make_job, remote_tag, contract_tag):
    """Four jobs covering every status, tags, images and search text."""
    return [
        make_job(
            "job-a",
            title="Backend Engineer",
            company="Acme",
            location="Remote",
            application_date="2024-01-15",
            status=JobStatus.APPLIED,
            tags=[remote_tag],
            updated_at=1_700_000_000_300,
        ),
        make_job(
            "job-b",
            title="Data Scientist",
            company="Beta Labs",
            location="New York, NY",
            application_date="2024-02-01",
            status=JobStatus.INTERVIEWING,
            notes="Open to remote after probation",
            tags=[remote_tag, contract_tag],
            updated_at=1_700_000_000_100,
        ),
        make_job(
            "job-c",
            title="Product Manager",
            company="Gamma",
            location="Austin, TX",
            application_date="2023-12-20",
            status=JobStatus.OFFERED,
            images=[JobImage(id="img-1", name="offer.png", data="data:image/png;base64,AAAA", created_at=1_700_000_000_000)],
            updated_at=1_700_000_000_200,
        ),
        make_job(
            "job-d",
            title="QA Analyst",
            company="delta",
            location="Boston, MA",
            application_date="2024-02-10",
            status=JobStatus.REJECTED,
            tags=[contract_tag],
            updated_at=1_700_000_000_100,
        ),
    ]


@pytest.fixture
def memory_store(quiet_logger) -> MemoryRecordStore:
    return MemoryRecordStore(logger=quiet_logger)


@pytest.fixture
def sql_store(tmp_path, quiet_logger):
    store = SQLRecordStore(tmp_path / "data" / "jobs.db", logger=quiet_logger)
    yield store
    store.close()


@pytest.fixture
def populated_store(memory_store, sample_jobs, remote_tag, contract_tag) -> MemoryRecordStore:
    memory_store.replace_all(sample_jobs, [remote_tag, contract_tag])
    return memory_store


@pytest.fixture
def coordinator(populated_store, quiet_logger) -> JobCoordinator:
    coord = JobCoordinator(populated_store, logger=quiet_logger)
    coord.load()
    return coord
