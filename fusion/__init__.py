"""
Multimodal risk fusion module.

This package combines the FAST protocol signals into a single stroke risk
classification:
- Facial asymmetry (base score)
- Posture imbalance (weighted contribution)
- Speech quality (slurring, clarity, fluency)

Outputs are screening indicators, not a medical diagnosis.
"""

from .risk_fusion import (
    RiskFusionEngine,
    compute_risk,
    classify_score,
    speech_from_wire,
    HIGH_RISK_THRESHOLD,
    MEDIUM_RISK_THRESHOLD,
)
from .fast_protocol import FastEvaluation, evaluate_fast_protocol, speech_abnormal

__all__ = [
    'RiskFusionEngine',
    'compute_risk',
    'classify_score',
    'speech_from_wire',
    'HIGH_RISK_THRESHOLD',
    'MEDIUM_RISK_THRESHOLD',
    'FastEvaluation',
    'evaluate_fast_protocol',
    'speech_abnormal',
]
