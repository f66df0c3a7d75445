"""
visitrack - Visitor presence tracking and compliance ledger.

Tracks third-party visitors inside a facility through a visit lifecycle
state machine, fans presence changes out to the people who need to know,
and keeps a retention-bounded audit and consent ledger that anonymizes
instead of deleting.

Operating principles:
- The compliance record outranks availability of the feature
- Every accepted transition is audited exactly once
- Notification delivery is best-effort per channel, never silent
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
