from datetime import datetime, timezone

from sqlmodel import Session, select

from chatrelay.models.job import JobRecord


class JobRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(self, job: JobRecord) -> JobRecord:
        """Stage a job in the caller's transaction. Caller commits."""
        self.session.add(job)
        return job

    def get(self, job_id: int) -> JobRecord | None:
        return self.session.get(JobRecord, job_id)

    def next_due(self, now: datetime | None = None) -> JobRecord | None:
        now = now or datetime.now(timezone.utc)
        statement = (
            select(JobRecord)
            .where(JobRecord.status == "pending")
            .where(JobRecord.available_at <= now)
            .order_by(JobRecord.id)  # type: ignore
            .limit(1)
        )
        return self.session.exec(statement).first()

    def save(self, job: JobRecord) -> JobRecord:
        self.session.add(job)
        self.session.commit()
        self.session.refresh(job)
        return job

    def release_running(self) -> int:
        """Put every running job back to pending, due now. Commits."""
        jobs = self.session.exec(select(JobRecord).where(JobRecord.status == "running")).all()
        now = datetime.now(timezone.utc)
        for job in jobs:
            job.status = "pending"
            job.attempts = max(job.attempts - 1, 0)
            job.available_at = now
            self.session.add(job)
        self.session.commit()
        return len(jobs)

    def list_by_name(self, name: str) -> list[JobRecord]:
        statement = select(JobRecord).where(JobRecord.name == name).order_by(JobRecord.id)  # type: ignore
        return list(self.session.exec(statement).all())
