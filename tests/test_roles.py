import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from timetracker.core.roles import Capability, Role, capabilities_for, has_capability


def test_user_sees_time_tracking_and_projects_only():
    assert capabilities_for(Role.USER) == (Capability.TIME_TRACKING, Capability.PROJECTS)


def test_supervisor_adds_analytics():
    assert capabilities_for("supervisor") == (
        Capability.TIME_TRACKING,
        Capability.PROJECTS,
        Capability.ANALYTICS,
    )


def test_manager_adds_analytics_and_management():
    assert capabilities_for(Role.MANAGER) == (
        Capability.TIME_TRACKING,
        Capability.PROJECTS,
        Capability.ANALYTICS,
        Capability.MANAGEMENT,
    )


def test_nobody_signed_in_has_no_capabilities():
    assert capabilities_for(None) == ()
    assert not has_capability(None, Capability.TIME_TRACKING)


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        capabilities_for("admin")


def test_has_capability():
    assert has_capability("manager", Capability.MANAGEMENT)
    assert not has_capability("supervisor", Capability.MANAGEMENT)
    assert has_capability("supervisor", Capability.ANALYTICS)
