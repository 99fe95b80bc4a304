"""Load test scenarios"""

from . import chaos_injection
from . import pass_through

__all__ = ["chaos_injection", "pass_through"]
