"""
Reconciler 모듈

고객 캐시 잔액을 원장 이력과 비교하여 보정
"""

from jobs.reconciler.drift import BalanceDrift, DriftDetector
from jobs.reconciler.recalibrator import RecalibrationReport, Recalibrator

__all__ = [
    "Recalibrator",
    "RecalibrationReport",
    "DriftDetector",
    "BalanceDrift",
]
