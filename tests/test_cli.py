"""End-to-end CLI tests against a mocked HTTP API."""

import json

import httpx
import pytest

from valdor.cli import main
from valdor.client import ValdorAPI
from valdor.db import ListingCache


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "valdor.toml"
    path.write_text(
        f'[cache]\npath = "{(tmp_path / "cache.db").as_posix()}"\n', encoding="utf-8"
    )
    return path


@pytest.fixture
def routes(monkeypatch):
    """Map (method, path) → JSON body; records every request."""
    table: dict = {}
    seen: list = []

    def handler(request: httpx.Request) -> httpx.Response:
        key = (request.method, request.url.path)
        seen.append((key, request.content))
        if key not in table:
            return httpx.Response(404, json={"message": "Not found"})
        status, body = table[key]
        return httpx.Response(status, json=body)

    def from_config(cls, config):
        return cls(base_url="http://test/api", transport=httpx.MockTransport(handler))

    monkeypatch.setattr(ValdorAPI, "from_config", classmethod(from_config))
    table["seen"] = seen
    return table


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1
    assert "valdor-ops" in capsys.readouterr().out


def test_extract_url_and_commit(routes, config_path, tmp_path, capsys):
    routes[("GET", "/api/food/categories")] = (
        200, {"data": [{"_id": "c-main", "name": "Main Course"}]}
    )
    routes[("POST", "/api/food-complete/ai/extract-from-url")] = (
        200,
        {"data": {"menuItems": [{"name": "Kottu", "price": 800}, {"name": "Tea", "price": 100}]}},
    )
    routes[("POST", "/api/food/items")] = (201, {"data": {"_id": "new-id"}})

    main([
        "--config", str(config_path),
        "extract", "--url", "https://example.com/menu",
        "--select", "0", "--commit", "--json",
    ])

    out = capsys.readouterr().out
    assert '"name_english": "Kottu"' in out
    assert '"category": "c-main"' in out
    assert "1 items saved" in out

    posted = [
        json.loads(body)
        for (method, path), body in routes["seen"]
        if (method, path) == ("POST", "/api/food/items")
    ]
    assert [p["name"] for p in posted] == ["Kottu"]

    cache = ListingCache(tmp_path / "cache.db")
    assert cache.get("categories") is None
    cache.close()


def test_extract_missing_image(routes, config_path, tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(config_path), "extract", "--image", str(tmp_path / "nope.jpg")])
    assert exc_info.value.code == 1
    assert "File not found" in capsys.readouterr().err


def test_extract_no_results(routes, config_path, tmp_path, capsys):
    image = tmp_path / "menu.jpg"
    image.write_bytes(b"\xff\xd8" + b"\x00" * 2048)
    routes[("GET", "/api/food/categories")] = (200, {"data": []})
    routes[("POST", "/api/food-complete/ai/extract")] = (
        200, {"data": {"menuItems": [], "ocrText": "", "confidence": 0}}
    )

    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(config_path), "extract", "--image", str(image)])

    assert exc_info.value.code == 1
    err = capsys.readouterr().err
    assert "No menu items found" in err
    assert "unreadable" in err


def test_tasks_board_json(routes, config_path, capsys):
    routes[("GET", "/api/task-management/tasks")] = (
        200,
        {"data": {"tasks": [
            {"_id": "t1", "title": "Fix AC", "status": "Pending"},
            {"_id": "t2", "title": "Room service", "status": "Pending", "isWorkflowTask": True},
            {"_id": "t3", "title": "Old", "status": "Cancelled"},
        ]}},
    )

    main(["--config", str(config_path), "tasks", "board", "--json"])

    board = json.loads(capsys.readouterr().out)
    assert [t["id"] for t in board["pending"]] == ["t1"]
    assert [t["id"] for t in board["awaiting_assignment"]] == ["t2"]
    assert board["in_progress"] == []


def test_tasks_auto_assign(routes, config_path, capsys):
    routes[("GET", "/api/task-management/tasks")] = (
        200,
        {"data": [
            {"_id": "t1", "title": "Fix AC", "status": "Pending",
             "recommendedStaff": [{"staffId": "s1", "name": "Kamal"}]},
            {"_id": "t2", "title": "Mop lobby", "status": "Pending",
             "recommendedStaff": [{"staffId": "s2", "name": "Sita"}]},
        ]},
    )
    routes[("PUT", "/api/task-management/tasks/t1/assign")] = (200, {"success": True})
    routes[("PUT", "/api/task-management/tasks/t2/assign")] = (200, {"success": True})

    main(["--config", str(config_path), "tasks", "auto-assign"])

    assert "Assigned 2 task(s)" in capsys.readouterr().out


def test_tasks_assign_failure_exits_nonzero(routes, config_path, capsys):
    routes[("GET", "/api/task-management/tasks")] = (200, {"data": []})
    routes[("PUT", "/api/task-management/tasks/t9/assign")] = (
        400, {"message": "Staff member is off duty"}
    )

    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(config_path), "tasks", "assign", "t9", "s1"])

    assert exc_info.value.code == 1
    err = capsys.readouterr().err
    assert "Failed to assign task" in err
    assert "Staff member is off duty" in err
