"""Tests for /configure, /unseal and /render."""
import html

from sealhook.domain.sealer import Sealer
from conftest import BASE_URL, TEST_SECRET


class TestConfigure:
    def test_returns_webhook_url(self, client):
        resp = client.post("/configure", data={"url": "https://example.com/hook", "template": "{{ value }}"})

        assert resp.status_code == 200
        webhook_url = resp.json()["webhook_url"]
        assert webhook_url.startswith(BASE_URL + "/wh/")

        token = webhook_url[len(BASE_URL + "/wh/"):]
        config = Sealer(TEST_SECRET).unseal(token)
        assert config.url == "https://example.com/hook"
        assert config.tmpl == "{{ value }}"

    def test_missing_fields(self, client):
        for data in ({}, {"url": "https://example.com"}, {"template": "x"}, {"url": "", "template": ""}):
            resp = client.post("/configure", data=data)
            assert resp.status_code == 400
            assert resp.json() == {"error": "missing URL or template"}

    def test_invalid_template_syntax(self, client):
        resp = client.post("/configure", data={"url": "https://example.com", "template": "{{.value}}"})

        assert resp.status_code == 400
        assert resp.json()["error"].startswith("invalid template: ")

    def test_prewarms_cache(self, client):
        client.post("/configure", data={"url": "https://example.com", "template": "{{ v }}"})

        assert len(client.app.state.templates) == 1

    def test_configured_url_delivers(self, client, target):
        resp = client.post("/configure", data={"url": "https://example.com/hook", "template": '{"mapped":"{{ value }}"}'})
        path = resp.json()["webhook_url"][len(BASE_URL):]

        delivered = client.post(path, content=b'{"value":"hello"}')

        assert delivered.status_code == 200
        assert target.requests[0].content == b'{"mapped":"hello"}'

    def test_htmx_fragment(self, client):
        resp = client.post(
            "/configure",
            data={"url": "https://example.com", "template": "x"},
            headers={"HX-Request": "true"},
        )

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert '<input type="text" readonly value="' + BASE_URL + "/wh/" in resp.text
        assert "btn-copy" in resp.text

    def test_base_url_trailing_slash_is_stripped(self, make_client):
        client = make_client(BASE_URL="http://relay.test/")

        resp = client.post("/configure", data={"url": "https://example.com", "template": "x"})

        assert resp.json()["webhook_url"].startswith("http://relay.test/wh/")


class TestUnseal:
    def test_bare_token(self, client):
        token = Sealer(TEST_SECRET).seal("https://example.com/<hook>", '{"a":"{{ b }}"}')

        resp = client.post("/unseal", data={"token": token})

        assert resp.status_code == 200
        assert html.escape("https://example.com/<hook>") in resp.text
        assert html.escape('{"a":"{{ b }}"}') in resp.text
        assert "<hook>" not in resp.text

    def test_full_webhook_url(self, client):
        token = Sealer(TEST_SECRET).seal("https://example.com/hook", "tmpl")

        resp = client.post("/unseal", data={"token": f"{BASE_URL}/wh/{token}"})

        assert "https://example.com/hook" in resp.text
        assert "tmpl" in resp.text

    def test_empty_input(self, client):
        resp = client.post("/unseal", data={"token": ""})

        assert resp.status_code == 200
        assert resp.text == ""

    def test_invalid_token_fragment(self, client):
        token = Sealer("another-secret").seal("https://example.com/hook", "tmpl")

        resp = client.post("/unseal", data={"token": token})

        assert resp.text == '<span class="error">invalid token</span>'


class TestRender:
    def test_renders_preview(self, client):
        resp = client.post("/render", data={"template": "<{{ name }}>", "data": '{"name": "x&y"}'})

        assert resp.status_code == 200
        assert resp.text == "<pre>&lt;x&amp;y&gt;</pre>"

    def test_empty_template(self, client):
        resp = client.post("/render", data={"template": "", "data": "{}"})

        assert resp.text == ""

    def test_without_data(self, client):
        resp = client.post("/render", data={"template": "static-{{ missing }}"})

        assert resp.text == "<pre>static-</pre>"

    def test_bad_data(self, client):
        resp = client.post("/render", data={"template": "x", "data": "{nope"})

        assert resp.text.startswith('<span class="error">example data: ')

    def test_deeply_nested_data(self, client):
        data = "[" * 100_000 + "]" * 100_000

        resp = client.post("/render", data={"template": "x", "data": data})

        assert resp.status_code == 200
        assert resp.text.startswith('<span class="error">example data: invalid JSON: ')

    def test_bad_template(self, client):
        resp = client.post("/render", data={"template": "{% if %}", "data": "{}"})

        assert resp.text.startswith('<span class="error">template: ')

    def test_runtime_error(self, client):
        resp = client.post("/render", data={"template": "{{ n / 0 }}", "data": '{"n": 1}'})

        assert resp.text.startswith('<span class="error">render: ')

    def test_does_not_touch_cache(self, client):
        client.post("/render", data={"template": "{{ x }}", "data": "{}"})

        assert len(client.app.state.templates) == 0


class TestBasicAuth:
    def test_open_without_password(self, client):
        assert client.post("/render", data={"template": "x"}).status_code == 200

    def test_rejects_missing_credentials(self, make_client):
        client = make_client(PASSWORD="hunter2")

        resp = client.post("/configure", data={"url": "https://example.com", "template": "x"})

        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == 'Basic realm="sealhook"'
        assert resp.json() == {"error": "unauthorized"}

    def test_rejects_wrong_password(self, make_client):
        client = make_client(PASSWORD="hunter2")

        resp = client.post("/unseal", data={"token": "x"}, auth=("sealhook", "wrong"))

        assert resp.status_code == 401

    def test_accepts_valid_credentials(self, make_client):
        client = make_client(PASSWORD="hunter2")

        resp = client.post("/configure", data={"url": "https://example.com", "template": "x"},
                           auth=("sealhook", "hunter2"))

        assert resp.status_code == 200

    def test_webhook_route_is_not_gated(self, make_client, target):
        client = make_client(PASSWORD="hunter2")

        resp = client.post(f"/wh/{Sealer(TEST_SECRET).seal('https://example.com', 'x')}")

        assert resp.status_code == 200
