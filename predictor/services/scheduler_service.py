"""
Background scheduler service

Runs the periodic recalculation sweep with APScheduler and hosts other
interval jobs (the live score simulator) on the same scheduler. One
instance exists per application, stored in ``app.extensions``.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from predictor import db

logger = logging.getLogger(__name__)

RECALCULATE_JOB_ID = "recalculate_points"


class SchedulerService:
    """Manages background jobs for one Flask application"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.stats = self._empty_stats()
        self.stop_listeners = []

        if app:
            self.init_app(app)

    @staticmethod
    def _empty_stats():
        return {
            "last_run": None,
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_error": None,
            "predictions_updated": 0,
        }

    def init_app(self, app):
        """Bind to the Flask app; the scheduler is started separately"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")
        self.interval = app.config.get("RECALC_INTERVAL_SECONDS", 300)

        # Register shutdown
        atexit.register(self.shutdown)

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True

            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        # Hosted jobs are removed first so a later start() does not revive them
        for listener in self.stop_listeners:
            listener()

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        self.scheduler.add_job(
            func=self._recalculate_points,
            trigger=IntervalTrigger(seconds=self.interval),
            id=RECALCULATE_JOB_ID,
            name="Recalculate Prediction Points",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
            replace_existing=True,
        )

        logger.info(f"Recalculation job scheduled every {self.interval}s")

    def add_job(self, func, seconds, job_id, name=None):
        """Schedule an extra interval job on this scheduler"""
        return self.scheduler.add_job(
            func=func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=name or job_id,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

    def remove_job(self, job_id):
        try:
            self.scheduler.remove_job(job_id)
            return True
        except JobLookupError:
            return False

    def has_job(self, job_id):
        return self.scheduler.get_job(job_id) is not None

    def _recalculate_points(self):
        """Periodic sweep over every prediction of a finished match"""
        from predictor.services.recalculation import recalculate_all
        from predictor.socketio_handlers import broadcast_points_changed

        with self.app.app_context():
            try:
                result = recalculate_all()
                broadcast_points_changed(result.changed)
                self._update_stats(True, result.updated_count)
                return result.updated_count

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.stats["last_error"] = str(e)
                logger.error(f"Error in recalculation sweep: {e}", exc_info=True)
                return None

    def _update_stats(self, success, predictions_updated=0):
        self.stats["last_run"] = datetime.now(timezone.utc)
        self.stats["total_runs"] += 1

        if success:
            self.stats["successful_runs"] += 1
            self.stats["predictions_updated"] += predictions_updated
            self.stats["last_error"] = None
        else:
            self.stats["failed_runs"] += 1

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = getattr(job, "next_run_time", None)
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.stats)
        if stats["last_run"]:
            stats["last_run"] = stats["last_run"].isoformat()

        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}

    def force_recalculate(self):
        """Run the sweep now, outside the schedule"""
        updated = self._recalculate_points()
        if updated is None:
            return False, f"Recalculation failed: {self.stats['last_error']}"
        return True, f"Recalculation completed: {updated} predictions updated"

    def pause_job(self, job_id):
        """Pause a specific job"""
        try:
            self.scheduler.pause_job(job_id)
            return True, f"Job {job_id} paused"
        except JobLookupError as e:
            return False, f"Failed to pause job: {e}"

    def resume_job(self, job_id):
        """Resume a specific job"""
        try:
            self.scheduler.resume_job(job_id)
            return True, f"Job {job_id} resumed"
        except JobLookupError as e:
            return False, f"Failed to resume job: {e}"
