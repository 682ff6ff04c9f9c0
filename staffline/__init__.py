"""
Staffline - a vetted-expert staffing marketplace.

Domain core: expert profile moderation, hire requests and contracts, the
marketplace listing policy, invites and portfolios, over a pluggable data
gateway (Supabase in production, in-memory for tests).
"""

from .access import Actor, Role
from .errors import StafflineError

try:
    from importlib.metadata import version

    __version__ = version("staffline")
except Exception:
    __version__ = "0.0.0"

__all__ = ["Actor", "Role", "StafflineError"]
