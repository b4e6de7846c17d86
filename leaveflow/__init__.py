"""LeaveFlow — leave lifecycle, SLA compliance and eligibility scoring."""

__version__ = "1.0.0"
