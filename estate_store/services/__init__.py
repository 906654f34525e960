"""Backend-independent rules shared by every storage implementation"""
from .quota import (
    UNLIMITED_WAVES, REPAIR_WAVE_BALANCE, WaveValidation,
    is_wave_assigned, remaining_waves, validate_assignment,
    assignment_needs_check, enforce_assignment, needs_balance_repair
)
from .points import calculate_level, accumulate, build_analytics, LEVEL_THRESHOLDS
from .filters import PropertyFilters
from .slugs import generate_property_slug, generate_unique_slug, is_valid_slug, resolve_slug

__all__ = [
    'UNLIMITED_WAVES', 'REPAIR_WAVE_BALANCE', 'WaveValidation',
    'is_wave_assigned', 'remaining_waves', 'validate_assignment',
    'assignment_needs_check', 'enforce_assignment', 'needs_balance_repair',
    'calculate_level', 'accumulate', 'build_analytics', 'LEVEL_THRESHOLDS',
    'PropertyFilters',
    'generate_property_slug', 'generate_unique_slug', 'is_valid_slug', 'resolve_slug'
]
