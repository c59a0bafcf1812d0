"""
Repair job for `Job.application_count`.

Counts are kept in step on every submit/withdraw, but anything that writes the
applications table directly (imports, manual fixes, older code paths) can leave them
stale. This recounts from scratch and only touches rows that disagree, so running it
any number of times gives the same result.
"""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.application import Application
from ..models.job import Job

logger = logging.getLogger(__name__)


def resync_application_counts(db: Session) -> dict[str, int]:
    actual = dict(
        db.query(Application.job_id, func.count(Application.id))
        .group_by(Application.job_id)
        .all()
    )

    checked = 0
    updated = 0
    try:
        for job_id, stored in db.query(Job.id, Job.application_count).all():
            checked += 1
            expected = int(actual.get(job_id, 0))
            if int(stored or 0) != expected:
                db.query(Job).filter(Job.id == job_id).update(
                    {Job.application_count: expected},
                    synchronize_session=False,
                )
                updated += 1
                logger.info("Job %s application count %s -> %s", job_id, stored, expected)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Application count resync: %d jobs checked, %d updated", checked, updated)
    return {"checked": checked, "updated": updated}
