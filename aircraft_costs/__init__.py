"""
Aircraft Cost Dashboard - Core Modules
"""

from .aggregation import aggregate, operating_totals
from .benchmark import compare
from .dashboard import DashboardService, build_dashboard
from .dates import DateRange
from .derivation import hours_flown, per_hour
from .rates import resolve_rate
from .series import monthly_series
from .supabase_client import SupabaseClient

__all__ = [
    'aggregate',
    'operating_totals',
    'compare',
    'DashboardService',
    'build_dashboard',
    'DateRange',
    'hours_flown',
    'per_hour',
    'resolve_rate',
    'monthly_series',
    'SupabaseClient',
]

__version__ = '0.1.0'
