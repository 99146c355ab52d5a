from __future__ import annotations

from app.models.lead import LEAD_STAGES, Lead
from app.models.user import SimpleUser

__all__ = ["LEAD_STAGES", "Lead", "SimpleUser"]
