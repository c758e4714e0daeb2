"""Menstrual cycle prediction for HeartLink.

Modules:
    predictor: Calendar prediction of the next period and ovulation date
"""

from heartlink.cycle.predictor import CyclePrediction, predict_cycle

__all__ = [
    "CyclePrediction",
    "predict_cycle",
]
