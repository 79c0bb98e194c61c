"""
Job Execution Log Model

Tracks the execution history of the suggestion refresh sweeps for monitoring.
"""

from sqlalchemy import Column, String, DateTime, Integer, Float, Text, Boolean
from sqlalchemy.sql import func
from devcollab.core.database import Base


class JobExecutionLog(Base):
    """Log entries for background job executions"""
    __tablename__ = "job_execution_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Job identification
    job_name = Column(String(100), nullable=False, index=True)
    job_id = Column(String(100), nullable=False)

    # Execution timing
    started_at = Column(DateTime(timezone=True), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Execution results
    status = Column(String(20), nullable=False, default="running", index=True)  # 'success', 'error', 'running'
    error_message = Column(Text, nullable=True)

    # Sweep metrics
    users_total = Column(Integer, default=0)
    users_processed = Column(Integer, default=0)
    users_failed = Column(Integer, default=0)
    batches = Column(Integer, default=0)

    # Metadata
    triggered_manually = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<JobExecutionLog(job_name='{self.job_name}', status='{self.status}', duration={self.duration_seconds}s)>"

    @property
    def execution_summary(self) -> dict:
        """Return a summary of the job execution"""
        return {
            "job_name": self.job_name,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "users_total": self.users_total,
            "users_processed": self.users_processed,
            "users_failed": self.users_failed,
            "batches": self.batches,
            "error_message": self.error_message,
            "triggered_manually": self.triggered_manually
        }
