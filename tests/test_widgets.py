import asyncio

from teamhub.application.widgets import CHART_REPORT_LIMIT, WidgetResolver


def _widget(kind: str, title: str, **data):
    return {
        "type": kind,
        "title": title,
        "data": data,
        "config": {},
        "position": {"row": 0, "col": 0, "size_x": 2, "size_y": 1},
    }


def _dashboard(*widgets):
    return {"id": "d1", "team": "t1", "widgets": list(widgets)}


def test_chart_widgets_get_recent_completed_reports():
    requested = []

    async def completed_reports(team_id, limit):
        requested.append((team_id, limit))
        return [{"id": f"r{n}"} for n in range(15)]

    resolver = WidgetResolver(completed_reports)
    [chart] = asyncio.run(resolver.resolve(_dashboard(_widget("chart", "Trend", series="monthly"))))

    assert requested == [("t1", CHART_REPORT_LIMIT)]
    assert chart["data"]["series"] == "monthly"
    assert [report["id"] for report in chart["data"]["reports"]] == [f"r{n}" for n in range(10)]
    assert chart["position"] == {"row": 0, "col": 0, "sizeX": 2, "sizeY": 1}


def test_other_widget_types_return_stored_data_in_order():
    async def completed_reports(team_id, limit):
        return []

    widgets = [
        _widget("metric", "Revenue", value=12),
        _widget("chart", "Trend"),
        _widget("table", "Rows", rows=[1, 2]),
        _widget("timeline", "Milestones"),
        _widget("map", "Regions"),
    ]
    resolved = asyncio.run(WidgetResolver(completed_reports).resolve(_dashboard(*widgets)))

    assert [widget["title"] for widget in resolved] == ["Revenue", "Trend", "Rows", "Milestones", "Regions"]
    assert resolved[0]["data"] == {"value": 12}
    assert resolved[1]["data"] == {"reports": []}
    assert resolved[2]["data"] == {"rows": [1, 2]}


def test_chart_falls_back_to_stored_data_when_lookup_fails():
    async def completed_reports(team_id, limit):
        raise RuntimeError("store offline")

    resolved = asyncio.run(
        WidgetResolver(completed_reports).resolve(
            _dashboard(_widget("chart", "Trend", series="weekly"), _widget("metric", "Count", value=3))
        )
    )

    assert len(resolved) == 2
    assert resolved[0]["data"] == {"series": "weekly"}
    assert resolved[1]["data"] == {"value": 3}


def test_dashboards_without_widgets_resolve_to_an_empty_list():
    async def completed_reports(team_id, limit):
        raise AssertionError("should not be called")

    assert asyncio.run(WidgetResolver(completed_reports).resolve(_dashboard())) == []
