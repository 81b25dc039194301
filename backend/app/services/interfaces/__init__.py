"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .admission import AdmissionStrategy
from .local_admission import LocalAdmission

__all__ = ['AdmissionStrategy', 'LocalAdmission']
