"""
Wave quota rules.

Usage is never stored: each backend counts the agent's properties that
carry a wave and hands the count to these functions, so the arithmetic
and the messages are identical everywhere.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from estate_store.core.exceptions import QuotaExceededError, WaveAssignmentError
from estate_store.models import User, DEFAULT_WAVE_BALANCE, normalize_wave_id

LOGGER = logging.getLogger(__name__)

# Remaining balance reported for admin and super_admin
UNLIMITED_WAVES = 999999

# Balance restored by the zero-balance repair
REPAIR_WAVE_BALANCE = DEFAULT_WAVE_BALANCE


@dataclass
class WaveValidation:
    """Outcome of a wave assignment check"""
    valid: bool
    message: Optional[str] = None

    def to_dict(self) -> dict:
        result = {'valid': self.valid}
        if self.message is not None:
            result['message'] = self.message
        return result


def is_wave_assigned(wave_id: Optional[str]) -> bool:
    """True for a real wave id; None and the "no-wave" sentinel count as unassigned"""
    return normalize_wave_id(wave_id) is not None


def remaining_waves(user: Optional[User], usage: int) -> int:
    if user is None:
        return 0
    if user.is_privileged:
        return UNLIMITED_WAVES
    return max(0, (user.wave_balance or 0) - usage)


def validate_assignment(user: Optional[User], wave_id: Optional[str], usage: int) -> WaveValidation:
    """
    Decide whether `user` may put one more property on `wave_id`.

    Args:
        user: The owning agent (None if unknown)
        wave_id: Wave being assigned
        usage: The agent's current count of wave-tagged properties
    """
    # Clearing an assignment never needs quota
    if not is_wave_assigned(wave_id):
        return WaveValidation(valid=True)

    if user is None:
        return WaveValidation(valid=False, message='User not found')

    if user.is_privileged:
        return WaveValidation(valid=True)

    if remaining_waves(user, usage) <= 0:
        return WaveValidation(
            valid=False,
            message=f"No wave assignments remaining. Current balance: {user.wave_balance or 0}"
        )

    return WaveValidation(valid=True)


def assignment_needs_check(
    current_agent_id: Optional[str],
    current_wave_id: Optional[str],
    new_agent_id: Optional[str],
    new_wave_id: Optional[str],
) -> bool:
    """
    Whether a write sets or changes a wave assignment for a known agent.

    True when a wave is placed on a property that had none, swapped for a
    different wave, or a wave-tagged property moves to another agent.
    Re-saving the same assignment and clearing a wave are never checked.
    """
    if not new_agent_id or not is_wave_assigned(new_wave_id):
        return False
    if new_agent_id != current_agent_id:
        return True
    return normalize_wave_id(current_wave_id) != normalize_wave_id(new_wave_id)


def enforce_assignment(user: Optional[User], wave_id: Optional[str], usage: int):
    """Raise if the assignment is not allowed; no-op otherwise"""
    validation = validate_assignment(user, wave_id, usage)
    if validation.valid:
        return
    if user is None:
        raise WaveAssignmentError(validation.message)

    LOGGER.warning(
        "Wave assignment rejected for user=%s wave=%s balance=%s usage=%s",
        user.id, wave_id, user.wave_balance, usage
    )
    raise QuotaExceededError(
        validation.message,
        wave_balance=user.wave_balance or 0,
        remaining=remaining_waves(user, usage)
    )


def needs_balance_repair(user: User) -> bool:
    """Plain customers whose balance was left at exactly zero"""
    return user.role == 'user' and user.wave_balance == 0
