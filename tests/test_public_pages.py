from conftest import csrf_headers


def test_home_renders_with_seo(client):
    r = client.get("/")
    assert r.status_code == 200
    html = r.get_data(as_text=True)
    assert "<title>Kothler | Precisión Y Crecimiento</title>" in html
    assert 'property="og:title"' in html
    assert '<link rel="canonical" href="http://localhost/">' in html


def test_home_lists_active_content(admin_client, client):
    admin_client.post(
        "/api/features",
        json={"title": "Soporte 24/7", "description": "Siempre disponibles para ti.", "icon": "Headset"},
        headers=csrf_headers(admin_client),
    )
    admin_client.post(
        "/api/packages",
        json={"name": "pro", "title": "Plan Pro", "description": "Todo incluido.", "price": 1500, "is_active": False},
        headers=csrf_headers(admin_client),
    )
    html = client.get("/").get_data(as_text=True)
    assert "Soporte 24/7" in html
    assert "Plan Pro" not in html


def test_section_pages_have_titles(client):
    for path, title in (
        ("/servicios", "Servicios | Kothler"),
        ("/equipo", "Equipo | Kothler"),
        ("/portafolio", "Portafolio | Kothler"),
    ):
        r = client.get(path)
        assert r.status_code == 200, path
        assert f"<title>{title}</title>" in r.get_data(as_text=True)


def test_missing_service_page_is_404(client):
    r = client.get("/servicios/no-existe")
    assert r.status_code == 404
