from __future__ import annotations

import pytest
from zkclear_desk.domain_types import RolePanels
from zkclear_desk.role_gate import can_access_panel, normalize_role, panels_for


@pytest.mark.parametrize("raw, expected", [
    ("dealer", "dealer"),
    ("  OPS ", "ops"),
    ("Compliance", "compliance"),
    ("auditor", None),
    ("", None),
    (None, None),
])
def test_normalize_role(raw: str | None, expected: str | None) -> None:
    assert normalize_role(raw) == expected


def test_ops_sees_every_panel() -> None:
    assert panels_for("ops") == RolePanels(dealer=True, ops=True, compliance=True)


def test_dealer_sees_only_dealer_panel() -> None:
    assert panels_for("dealer") == RolePanels(dealer=True, ops=False, compliance=False)


def test_compliance_sees_only_compliance_panel() -> None:
    panels = panels_for("compliance")
    assert panels == RolePanels(dealer=False, ops=False, compliance=True)
    assert panels.visible() == ("compliance",)


def test_dealer_and_compliance_do_not_share_panels() -> None:
    assert not can_access_panel("dealer", "compliance")
    assert not can_access_panel("compliance", "dealer")
    assert not can_access_panel("dealer", "ops")
