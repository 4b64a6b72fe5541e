from __future__ import annotations

from typing import Mapping

from .domain_types import PanelKey, Role, RolePanels

ROLES: tuple[Role, ...] = ("dealer", "ops", "compliance")

# Panel -> roles allowed to see it. New roles must be added here explicitly.
PANEL_RULES: Mapping[PanelKey, frozenset[Role]] = {
    "dealer": frozenset({"dealer", "ops"}),
    "ops": frozenset({"ops"}),
    "compliance": frozenset({"compliance", "ops"}),
}


def normalize_role(raw: str | None) -> Role | None:
    value = (raw or "").strip().lower()
    for role in ROLES:
        if value == role:
            return role
    return None


def can_access_panel(role: Role, panel: PanelKey) -> bool:
    return role in PANEL_RULES[panel]


def panels_for(role: Role) -> RolePanels:
    return RolePanels(
        dealer=can_access_panel(role, "dealer"),
        ops=can_access_panel(role, "ops"),
        compliance=can_access_panel(role, "compliance"),
    )
