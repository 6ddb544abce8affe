# donations/services/reconciler.py
"""
Stuck-assignment reconciler.

An assignment accepted but never started within the timeout is a no-show:
the assignment is cancelled, the volunteer loses trust, the donation is
freed and offered to the best-trusted volunteer still available in its
district. A failure on one assignment never stops the rest of the sweep.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass

from asgiref.sync import sync_to_async
from django.db import transaction
from django.utils import timezone

from ..models import Donation, VolunteerAssignment
from .trust import NO_SHOW, REASSIGNMENT

logger = logging.getLogger(__name__)

AUTO_UNASSIGNED_REASON = 'auto_unassigned_timeout'

SKIPPED = 'skipped'
REASSIGNED = 'reassigned'
UNASSIGNED = 'unassigned'


@dataclass
class SweepReport:
    checked: int = 0
    reassigned: int = 0
    unassigned: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self):
        return asdict(self)


def is_stuck(assignment, now, timeout):
    return (
        assignment.status == VolunteerAssignment.Status.ACCEPTED
        and assignment.started_at is None
        and not assignment.auto_unassigned
        and assignment.accepted_at < now - timeout
    )


class StuckAssignmentReconciler:
    def __init__(self, config, trust, allocator, clock=timezone.now):
        self.config = config
        self.trust = trust
        self.allocator = allocator
        self.clock = clock

    def find_stuck(self, now=None):
        now = now or self.clock()
        return VolunteerAssignment.objects.filter(
            status=VolunteerAssignment.Status.ACCEPTED,
            started_at__isnull=True,
            auto_unassigned=False,
            accepted_at__lt=now - self.config.stuck_timeout,
        ).order_by('accepted_at', 'pk')

    def sweep(self, now=None):
        now = now or self.clock()
        report = SweepReport()
        stuck_ids = list(self.find_stuck(now).values_list('pk', flat=True))

        for assignment_id in stuck_ids:
            report.checked += 1
            try:
                outcome = self.handle(assignment_id, now)
            except Exception:
                report.failed += 1
                logger.exception(f"Failed to reconcile assignment {assignment_id}")
                continue

            if outcome == REASSIGNED:
                report.reassigned += 1
            elif outcome == UNASSIGNED:
                report.unassigned += 1
            else:
                report.skipped += 1

        if stuck_ids:
            logger.info(f"Reconciler sweep: {report.to_dict()}")
        else:
            logger.debug("Reconciler sweep: no stuck assignments")
        return report

    def handle(self, assignment_id, now):
        """Unassign one stuck assignment and try to hand its donation to someone else."""
        with transaction.atomic():
            assignment = VolunteerAssignment.objects.get(pk=assignment_id)
            # Same lock order as pickup, so a pickup racing the sweep either wins or sees the cancellation
            donation = Donation.objects.select_for_update().get(pk=assignment.donation_id)

            cancelled = VolunteerAssignment.objects.filter(
                pk=assignment_id,
                status=VolunteerAssignment.Status.ACCEPTED,
                started_at__isnull=True,
                auto_unassigned=False,
            ).update(
                status=VolunteerAssignment.Status.CANCELLED,
                auto_unassigned=True,
                cancelled_reason=AUTO_UNASSIGNED_REASON,
            )
            if not cancelled:
                return SKIPPED

            hours = self.config.stuck_assignment_timeout_hours
            self.trust.update(
                assignment.volunteer_id,
                NO_SHOW,
                -self.config.no_show_penalty,
                f"No-show: pickup of donation #{donation.pk} not started within {hours:g} hours",
            )

            freed = Donation.objects.filter(
                pk=donation.pk,
                status=Donation.Status.ASSIGNED,
                volunteer_id=assignment.volunteer_id,
            ).update(
                volunteer=None,
                volunteer_name='',
                volunteer_phone='',
                assignment=None,
                assigned_at=None,
                auto_unassigned=True,
                updated_at=now,
            )

        logger.info(f"Assignment {assignment_id} auto-unassigned from volunteer {assignment.volunteer_id}")
        if not freed:
            return UNASSIGNED

        replacement = self.allocator.reassign(
            donation.pk,
            donation.district,
            exclude_ids=[assignment.volunteer_id],
        )
        if replacement is not None:
            return REASSIGNED

        self.trust.log_activity(
            assignment.volunteer_id,
            REASSIGNMENT,
            f"Donation #{donation.pk} left unassigned: no eligible volunteer in {donation.district}",
        )
        logger.warning(f"Donation {donation.pk} left unassigned after no-show in '{donation.district}'")
        return UNASSIGNED

    def stuck_assignments(self, now=None):
        """Every accepted-but-not-started assignment with how long it has waited."""
        now = now or self.clock()
        pending = (
            VolunteerAssignment.objects.filter(
                status=VolunteerAssignment.Status.ACCEPTED,
                started_at__isnull=True,
                auto_unassigned=False,
            )
            .select_related('volunteer', 'donation')
            .order_by('accepted_at')
        )
        return [
            {
                'assignment_id': a.pk,
                'donation_id': a.donation_id,
                'volunteer_id': a.volunteer_id,
                'volunteer_name': a.volunteer.full_name,
                'district': a.donation.district,
                'accepted_at': a.accepted_at.isoformat(),
                'hours_stuck': round((now - a.accepted_at).total_seconds() / 3600, 1),
                'past_timeout': is_stuck(a, now, self.config.stuck_timeout),
            }
            for a in pending
        ]

    def statistics(self):
        assignments = VolunteerAssignment.objects.all()
        return {
            'total_assignments': assignments.count(),
            'pending_start': assignments.filter(
                status=VolunteerAssignment.Status.ACCEPTED, started_at__isnull=True,
            ).count(),
            'auto_unassigned': assignments.filter(auto_unassigned=True).count(),
            'completed': assignments.filter(status=VolunteerAssignment.Status.COMPLETED).count(),
            'timeout_hours': self.config.stuck_assignment_timeout_hours,
        }


class ReconcilerScheduler:
    """
    Runs reconciler sweeps on a fixed interval as an asyncio task.
    stop() wakes the loop immediately instead of waiting out the interval.
    """

    def __init__(self, reconciler, interval_seconds, run_immediately=True):
        self.reconciler = reconciler
        self.interval_seconds = interval_seconds
        self.run_immediately = run_immediately
        self._stop_event = None
        self._task = None

    @property
    def is_running(self):
        return self._task is not None and not self._task.done()

    async def run_once(self):
        return await sync_to_async(self.reconciler.sweep, thread_sensitive=True)()

    async def _tick(self):
        try:
            await self.run_once()
        except Exception:
            logger.exception("Reconciler sweep failed")

    async def _loop(self):
        if self.run_immediately:
            await self._tick()
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                await self._tick()

    def start(self):
        """Schedule the loop on the running event loop. Returns the task."""
        if self.is_running:
            logger.warning("Reconciler scheduler already running")
            return self._task
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Reconciler scheduler started (every {self.interval_seconds:g}s)")
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        logger.info("Reconciler scheduler stopped")

    async def run_forever(self):
        task = self.start()
        await task
