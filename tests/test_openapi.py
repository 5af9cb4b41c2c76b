import json

from taskdesk.generate_openapi import build_openapi, main, write_openapi


def test_schema_lists_routes_and_tags():
    schema = build_openapi()
    paths = schema["paths"]
    assert "/api/health" in paths
    assert {"get", "post"} <= set(paths["/api/tasks"])
    assert {"put", "delete"} <= set(paths["/api/tasks/{task_id}"])
    assert "patch" in paths["/api/tasks/{task_id}/toggle"]
    assert {"/api/auth/signup", "/api/auth/login", "/api/auth/me"} <= set(paths)
    assert {t["name"] for t in schema["tags"]} >= {"health", "auth", "tasks"}


def test_write_openapi_creates_parent_dirs(tmp_path):
    out = tmp_path / "interfaces" / "openapi.json"
    assert write_openapi(str(out)) == str(out)
    written = json.loads(out.read_text(encoding="utf-8"))
    assert written["info"]["title"]
    assert "/api/tasks" in written["paths"]


def test_main_takes_output_path(tmp_path, capsys):
    out = tmp_path / "schema.json"
    main([str(out)])
    assert out.exists()
    assert str(out) in capsys.readouterr().out
