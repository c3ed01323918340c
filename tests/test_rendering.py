import re
from zoneinfo import ZoneInfo

import pytest

from time_reports.errors import ValidationError
from time_reports.models import (
    MemberReport,
    TaskAggregate,
    TeamLead,
    TeamReport,
    TimeEntry,
    UserRef,
)
from time_reports.rendering import (
    DetailLevel,
    render_member_summary,
    render_task_line,
    render_team_markdown,
    render_teams,
    render_time_entry,
    sanitize_title,
)


def _task(task_id="t1", name="Build report", ms=5_400_000, code="DEV-1"):
    return TaskAggregate(
        id=task_id,
        code=code,
        name=name,
        status="in progress",
        url=f"https://app.clickup.com/t/{code}",
        time_ms=ms,
    )


@pytest.fixture
def teams():
    ok = MemberReport(
        name="Ali",
        email="ali@x.com",
        clickup_id="11",
        total_ms=5_400_000,
        tasks=[_task()],
    )
    broken = MemberReport(
        name="Sara", email="sara@x.com", clickup_id="21", error="API 500: boom"
    )
    return [
        TeamReport(
            team_lead=TeamLead(name="Kashif", email="kashif@x.com"),
            members=[ok, broken],
        )
    ]


# ---------------------------------------------------------------------------
# Sanitizer
# ---------------------------------------------------------------------------


def test_sanitize_title_strips_diacritics_and_markup():
    assert sanitize_title("Ünïcode <script> title") == "Unicode script title"


def test_sanitize_title_output_is_safe():
    out = sanitize_title("a[b](c)\n\t*d* `e` #f Ω")
    assert re.fullmatch(r"[A-Za-z0-9 \-_.:/|&+]*", out)
    assert "  " not in out
    assert out == out.strip()


def test_sanitize_title_caps_length():
    assert len(sanitize_title("x" * 500)) == 140
    assert sanitize_title("abcdef", max_len=3) == "abc"


def test_sanitize_title_non_string():
    assert sanitize_title(None) == ""


# ---------------------------------------------------------------------------
# Member summary
# ---------------------------------------------------------------------------


def test_task_line_format():
    line = render_task_line(_task(name="Fix <bug>"))
    assert line == (
        "- [DEV-1: Fix bug](https://app.clickup.com/t/DEV-1) — in progress — ⏱ 1.50 hrs"
    )


@pytest.mark.parametrize("ms,hrs", [(450_000, "0.13"), (2_250_000, "0.63")])
def test_task_line_rounds_ties_up(ms, hrs):
    assert render_task_line(_task(ms=ms)).endswith(f"⏱ {hrs} hrs")


def test_member_summary():
    summary = render_member_summary([_task()], 5_400_000)
    assert summary["summary_markdown"].startswith("**Total: 1h 30m**\n\n- [DEV-1")
    assert len(summary["summary_lines"]) == 1


def test_member_summary_empty():
    summary = render_member_summary([], 0)
    assert summary == {
        "summary_lines": [],
        "summary_markdown": "No tasks logged in the given range.",
    }


# ---------------------------------------------------------------------------
# Team projections
# ---------------------------------------------------------------------------


def test_detail_level_parse():
    assert DetailLevel.parse(None) is DetailLevel.SUMMARY
    assert DetailLevel.parse("DETAILED") is DetailLevel.DETAILED
    with pytest.raises(ValidationError):
        DetailLevel.parse("everything")


def test_totals_only_omits_tasks(teams):
    team = render_teams(teams, "totals_only")[0]
    for member in team["members"]:
        assert "tasks" not in member
        assert "tasks_worked_on" not in member
        assert "email" not in member
        assert "error" in member


def test_summary_lists_task_names(teams):
    ali, sara = render_teams(teams, DetailLevel.SUMMARY)[0]["members"]
    assert ali["tasks_worked_on"] == ["Build report"]
    assert ali["task_count"] == 1
    assert "tasks" not in ali
    assert sara["error"] == "API 500: boom"


def test_detailed_includes_per_task_hours(teams):
    team = render_teams(teams, "detailed")[0]
    ali = team["members"][0]
    assert ali["clickup_id"] == "11"
    assert ali["tasks"] == [
        {"id": "t1", "name": "Build report", "status": "in progress", "hours": 1.5}
    ]
    assert team["members"][1]["error"] == "API 500: boom"


def test_team_totals_are_unrounded(teams):
    teams[0].members[0].total_ms = 1_000_000
    team = render_teams(teams, "summary")[0]
    assert team["team_total_ms"] == 1_000_000
    assert team["team_total_hours"] == 0.28
    assert team["team_lead"] == {"name": "Kashif", "email": "kashif@x.com"}


def test_team_markdown(teams):
    md = render_team_markdown(teams, "summary")
    assert md.startswith("**Organization Total: 1h 30m**")
    assert "### Kashif — 1h 30m" in md
    assert "- **Ali**: 1h 30m (1 tasks: Build report)" in md
    assert "⚠️ API 500: boom" in md


def test_team_markdown_empty():
    assert render_team_markdown([], "summary") == "No teams found in the Allocation list."


# ---------------------------------------------------------------------------
# Time entries
# ---------------------------------------------------------------------------


def test_render_time_entry_with_timezone():
    entry = TimeEntry(
        id="e1",
        start=1_760_000_000_000,
        end=None,
        duration_ms=0,
        tags=frozenset({"b", "a"}),
        user=UserRef(id="5", username="kashif"),
    )

    out = render_time_entry(entry, ZoneInfo("UTC"))

    assert out["tags"] == ["a", "b"]
    assert out["duration"] == "0m"
    assert out["user"] == {"id": "5", "username": "kashif"}
    assert out["task"] is None
    assert out["start_formatted"] == "2025-10-09 08:53"
    assert out["end_formatted"] == "Ongoing"


def test_render_time_entry_finished_has_end_time():
    entry = TimeEntry(
        id="e2",
        start=1_760_000_000_000,
        end=1_760_000_000_000 + 5_400_000,
        duration_ms=5_400_000,
    )

    out = render_time_entry(entry, ZoneInfo("UTC"))

    assert not entry.is_running
    assert out["end_formatted"] == "2025-10-09 10:23"
    assert out["duration"] == "1h 30m"


def test_team_markdown_sanitizes_names():
    member = MemberReport(name="Ali **[dev]**", email=None, clickup_id="11")
    teams = [
        TeamReport(
            team_lead=TeamLead(name="*Kashif* [TL]", email="kashif@x.com"),
            members=[member],
        ),
        TeamReport(
            team_lead=TeamLead(name="***", email="x@x.com"),
            members=[MemberReport(name="[]", email=None, clickup_id="12")],
        ),
    ]

    md = render_team_markdown(teams, "summary")

    assert "### Kashif TL — 0m" in md
    assert "- **Ali dev**: 0m" in md
    assert "### Unnamed — 0m" in md
    assert "- **Unnamed**: 0m" in md
