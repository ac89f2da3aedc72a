"""
Maintenance Use Cases
"""

from .sweep_expired_use_case import SweepExpiredUseCase, SweepReport

__all__ = ["SweepExpiredUseCase", "SweepReport"]
