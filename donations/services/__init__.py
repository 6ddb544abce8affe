# donations/services/__init__.py
from dataclasses import dataclass

from django.utils import timezone

from ..conf import PipelineConfig
from ..utils.geocoding import Geocoder
from .allocation import VolunteerAllocator
from .capacity import NGOCapacityLedger
from .coverage import DistributionAdvisor
from .lifecycle import DonationStateMachine
from .reconciler import ReconcilerScheduler, StuckAssignmentReconciler
from .results import ErrorType, ServiceResult
from .specialization import SpecializationMatcher
from .trust import TrustScoreLedger


@dataclass
class DonationServices:
    """The service objects of one process, wired together once."""
    config: PipelineConfig
    geocoder: Geocoder
    matcher: SpecializationMatcher
    capacity: NGOCapacityLedger
    trust: TrustScoreLedger
    allocator: VolunteerAllocator
    lifecycle: DonationStateMachine
    reconciler: StuckAssignmentReconciler
    advisor: DistributionAdvisor

    def scheduler(self, interval_seconds=None):
        return ReconcilerScheduler(
            self.reconciler,
            interval_seconds or self.config.reconciler_interval_seconds,
        )


def build_services(config=None, clock=timezone.now, geocoder=None):
    config = config or PipelineConfig.from_settings()
    geocoder = geocoder or Geocoder(
        base_url=config.geocoder_url,
        user_agent=config.geocoder_user_agent,
        timeout=config.geocoder_timeout,
    )
    matcher = SpecializationMatcher()
    capacity = NGOCapacityLedger(config, clock=clock)
    trust = TrustScoreLedger(config)
    allocator = VolunteerAllocator(config, trust, geocoder=geocoder, clock=clock)
    return DonationServices(
        config=config,
        geocoder=geocoder,
        matcher=matcher,
        capacity=capacity,
        trust=trust,
        allocator=allocator,
        lifecycle=DonationStateMachine(config, matcher, capacity, trust, clock=clock),
        reconciler=StuckAssignmentReconciler(config, trust, allocator, clock=clock),
        advisor=DistributionAdvisor(config, capacity, matcher, clock=clock),
    )


__all__ = [
    'DonationServices',
    'ErrorType',
    'ServiceResult',
    'build_services',
]
