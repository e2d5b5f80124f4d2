"""
Live score simulation for local development.

Every tick picks one live match from the configured match source and, with
the configured probability, adds a goal to a random side. Changes are
broadcast to connected clients exactly like real feed updates.
"""

import logging
import random

from predictor.models import MatchStatus
from predictor.socketio_handlers import broadcast_score_update, broadcast_status_change

logger = logging.getLogger(__name__)

SIMULATION_JOB_ID = "live_score_simulation"


class LiveScoreSimulator:
    def __init__(self, app, scheduler_service, interval=10, goal_chance=0.3,
                 rng=None, match_source=None):
        self.app = app
        self.scheduler_service = scheduler_service
        self.interval = interval
        self.goal_chance = goal_chance
        self.rng = rng or random.Random()
        self._match_source = match_source
        self.running = False

        # Ticks only fire on a running scheduler; stopping it stops the simulation
        scheduler_service.stop_listeners.append(self._halt)

    @property
    def match_source(self):
        if self._match_source is not None:
            return self._match_source
        return self.app.extensions["match_source"]

    def status(self):
        with self.app.app_context():
            live = len(self.match_source.live_matches())
        running = self.running and self.scheduler_service.is_running
        return {"running": running, "live_matches": live}

    def start(self):
        if self.running:
            logger.info("Live score simulation already running")
            return self.status()

        if not self.scheduler_service.is_running:
            logger.warning("Live score simulation not started: scheduler is not running")
            return self.status()

        self.scheduler_service.add_job(
            self._run_tick, self.interval, SIMULATION_JOB_ID, "Live Score Simulation"
        )
        self.running = True
        logger.info(f"Live score simulation started (updates every {self.interval}s)")
        return self.status()

    def stop(self):
        self._halt()
        return self.status()

    def _halt(self):
        if self.running:
            self.scheduler_service.remove_job(SIMULATION_JOB_ID)
            self.running = False
            logger.info("Live score simulation stopped")

    def _run_tick(self):
        with self.app.app_context():
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Live score simulation tick failed: {e}", exc_info=True)

    def tick(self):
        """Simulate one update; returns the match whose score changed, or None"""
        live = self.match_source.live_matches()
        if not live:
            logger.debug("No live matches to simulate")
            return None

        match = self.rng.choice(live)
        if self.rng.random() >= self.goal_chance:
            return None

        home_score = match.home_score or 0
        away_score = match.away_score or 0
        if self.rng.random() < 0.5:
            home_score += 1
        else:
            away_score += 1

        self.match_source.apply_score(match, home_score, away_score)
        logger.info(
            f"Score update: {match.home_team} {match.home_score} - "
            f"{match.away_score} {match.away_team}"
        )
        broadcast_score_update(match)
        return match

    def change_status(self, match_id, status):
        """Manually move a match to a new status; returns the match or None if unknown"""
        status = MatchStatus.parse(status)
        match = self.match_source.get(match_id)
        if match is None:
            logger.info(f"Match {match_id} not found")
            return None

        old_status = match.status
        became_final = self.match_source.set_status(match, status)
        logger.info(
            f"Status change: {match.home_team} vs {match.away_team} - "
            f"{old_status} -> {match.status}"
        )
        broadcast_status_change(match)

        if became_final and self.match_source.name == "database":
            from predictor.services.recalculation import settle_match

            settle_match(match.id)

        return match
