# donations/conf.py
"""
Pipeline tuning knobs, read once from settings.DONATION_PIPELINE and handed
to each service through its constructor.
"""

from dataclasses import dataclass, fields
from datetime import timedelta

from django.conf import settings


@dataclass(frozen=True)
class PipelineConfig:
    default_daily_limit: int = 7
    enforce_daily_limit: bool = True
    performance_window_days: int = 30
    coverage_window_days: int = 7
    max_active_pickups: int = 10
    initial_trust_score: int = 40
    delivery_reward: int = 10
    no_show_penalty: int = 15
    stuck_assignment_timeout_hours: float = 4
    reconciler_interval_minutes: float = 30
    geocoder_url: str = 'https://nominatim.openstreetmap.org/search'
    geocoder_user_agent: str = 'giving-network'
    geocoder_timeout: float = 5

    @classmethod
    def from_settings(cls):
        raw = getattr(settings, 'DONATION_PIPELINE', {})
        known = {f.name for f in fields(cls)}
        values = {key.lower(): value for key, value in raw.items() if key.lower() in known}
        return cls(**values)

    @property
    def stuck_timeout(self):
        return timedelta(hours=self.stuck_assignment_timeout_hours)

    @property
    def reconciler_interval_seconds(self):
        return self.reconciler_interval_minutes * 60
