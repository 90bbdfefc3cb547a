"""
Round-up savings.

Provides:
  - RoundUpPolicyEngine : per-account automations + transfer interception
  - SlotPolicy          : which automation slots an interception consults
  - round_up / savings_for : exact integer arithmetic
"""

from .arithmetic import round_up, savings_for
from .engine import RoundUpPolicyEngine, SlotPolicy

__all__ = [
    "RoundUpPolicyEngine",
    "SlotPolicy",
    "round_up",
    "savings_for",
]
