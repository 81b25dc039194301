"""
Admission strategy factory.
Configures which per-room admission guard to use.
"""

from typing import Optional

from app.services.interfaces.admission import AdmissionStrategy
from app.services.interfaces.local_admission import LocalAdmission
from app.services.admission_service import RedisAdmission
from app.core.config import get_settings


def get_admission_strategy() -> AdmissionStrategy:
    """
    Build the configured admission strategy.

    - local (default): one process, asyncio locks
    - redis: multiple workers, Redis lease locks

    Selected via the ADMISSION_STRATEGY env var.
    """
    strategy = get_settings().ADMISSION_STRATEGY

    if strategy == 'redis':
        return RedisAdmission()
    return LocalAdmission()


# Singleton instance
_strategy: Optional[AdmissionStrategy] = None


def get_admission() -> AdmissionStrategy:
    """Get admission strategy singleton. Also used as a FastAPI dependency."""
    global _strategy
    if _strategy is None:
        _strategy = get_admission_strategy()
    return _strategy
