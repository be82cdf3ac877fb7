from relay.headers import (
    IGNORE_HEADERS,
    append_cookie,
    prepare_headers,
    strip_ignored,
)


class TestPrepareHeaders:
    def test_session_from_headers(self):
        result = prepare_headers(
            {
                "Session-Cookie-Key": "MoodleSession",
                "Session-Cookie-Value": "abc123",
                "Accept": "text/html",
            },
            {},
        )

        assert result.session_key == "MoodleSession"
        assert result.session_value == "abc123"
        assert result.headers["cookie"] == "MoodleSession=abc123"
        assert "session-cookie-key" not in result.headers
        assert "session-cookie-value" not in result.headers
        assert result.headers["accept"] == "text/html"

    def test_session_falls_back_to_query(self):
        result = prepare_headers({}, {"sesskey": "sid", "sessval": "xyz"})

        assert result.session_key == "sid"
        assert result.session_value == "xyz"
        assert result.headers["cookie"] == "sid=xyz"

    def test_headers_win_over_query(self):
        result = prepare_headers(
            {"session-cookie-key": "sid", "session-cookie-value": "from-header"},
            {"sesskey": "other", "sessval": "from-query"},
        )

        assert result.headers["cookie"] == "sid=from-header"

    def test_cookie_appended_to_existing(self):
        result = prepare_headers(
            {
                "cookie": "lang=vi",
                "session-cookie-key": "sid",
                "session-cookie-value": "xyz",
            },
            {},
        )

        assert result.headers["cookie"] == "lang=vi; sid=xyz"

    def test_empty_session_value_adds_no_cookie(self):
        result = prepare_headers(
            {"session-cookie-key": "sid", "session-cookie-value": ""}, {}
        )

        assert "cookie" not in result.headers
        assert result.session_key == "sid"

    def test_missing_key_adds_no_cookie(self):
        result = prepare_headers({"session-cookie-value": "xyz"}, {})

        assert "cookie" not in result.headers
        assert result.session_value == "xyz"

    def test_header_swaps(self):
        result = prepare_headers(
            {
                "Host": "localhost:80",
                "Origin": "http://localhost",
                "Set-Host": "ctms.example.edu",
                "Set-Origin": "https://ctms.example.edu",
                "Set-Referer": "https://ctms.example.edu/login",
            },
            {},
        )

        assert result.headers["host"] == "ctms.example.edu"
        assert result.headers["origin"] == "https://ctms.example.edu"
        assert result.headers["referer"] == "https://ctms.example.edu/login"
        for control in ("set-host", "set-origin", "set-referer"):
            assert control not in result.headers

    def test_inbound_host_dropped_without_set_host(self):
        result = prepare_headers({"host": "localhost:80", "origin": "http://a"}, {})

        assert "host" not in result.headers
        assert result.headers["origin"] == "http://a"

    def test_ignored_and_hop_by_hop_headers_removed(self):
        result = prepare_headers(
            {
                "content-length": "10",
                "pragma": "no-cache",
                "location": "/x",
                "connection": "keep-alive",
                "transfer-encoding": "chunked",
                "user-agent": "test-agent",
            },
            {},
        )

        assert result.headers == {"user-agent": "test-agent"}


def test_append_cookie_creates_header():
    headers = {}
    append_cookie(headers, "a", "1")
    append_cookie(headers, "b", "2")
    assert headers["cookie"] == "a=1; b=2"


def test_strip_ignored_covers_deny_list():
    headers = {name: "x" for name in IGNORE_HEADERS}
    headers["accept"] = "*/*"
    assert strip_ignored(headers) == {"accept": "*/*"}
