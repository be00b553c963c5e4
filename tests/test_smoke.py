from conftest import ADMIN_EMAIL, PASSWORD


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_ok(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.get_data(as_text=True) == "ok"


def test_login_and_dashboard_access(client):
    # Anonymous is sent to the login page
    r = client.get("/dashboard/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    r = client.post("/auth/login", data={"email": ADMIN_EMAIL, "password": PASSWORD}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard/")

    r = client.get("/dashboard/")
    assert r.status_code == 200
    assert b"Dashboard" in r.data


def test_unknown_api_route_is_json_404(client):
    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert "error" in r.json


def test_unknown_page_renders_html_404(client):
    r = client.get("/no-such-page")
    assert r.status_code == 404
    assert b"404" in r.data
