"""Reasoning service integration"""

from .agents import AdvisoryAgent, DiseaseMedicineAgent, OperationsAgent, OutbreakDetectorAgent
from .defaults import default_diseases, default_medicines

__all__ = [
    "AdvisoryAgent",
    "OutbreakDetectorAgent",
    "OperationsAgent",
    "DiseaseMedicineAgent",
    "default_diseases",
    "default_medicines",
]
