from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from app.modules.access.schemas import Role, SessionSnapshot

SIGN_IN_PATH = "/auth/login"

ROLE_HOME = {
    Role.ADMIN: "/admin",
    Role.EMPLOYEE: "/employee",
    Role.PARTNER: "/partner",
}


class GateOutcome(str, Enum):
    LOADING = "loading"
    REDIRECT = "redirect"
    RENDER = "render"


@dataclass(frozen=True)
class GateDecision:
    outcome: GateOutcome
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome == GateOutcome.RENDER


def home_path(role: Optional[Role]) -> str:
    """Landing path for a role; unknown roles go back to sign-in."""
    if role is None:
        return SIGN_IN_PATH
    return ROLE_HOME[role]


def evaluate_gate(snapshot: SessionSnapshot, allow: Iterable[Role]) -> GateDecision:
    if snapshot.loading:
        return GateDecision(GateOutcome.LOADING)
    profile = snapshot.profile
    if profile is None or profile.role is None:
        return GateDecision(GateOutcome.REDIRECT, SIGN_IN_PATH)
    if profile.role not in set(allow):
        return GateDecision(GateOutcome.REDIRECT, home_path(profile.role))
    return GateDecision(GateOutcome.RENDER)
