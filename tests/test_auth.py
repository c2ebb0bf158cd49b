from urllib.parse import quote

from flet_pdf_reader.auth import UserSession, parse_session_cookie, session_from_cookie_header


def test_parse_json_cookie():
    session = parse_session_cookie('{"id": 42, "email": "ada@example.com", "name": "Ada"}')
    assert session == UserSession(user_id="42", email="ada@example.com", name="Ada")


def test_parse_url_encoded_cookie():
    value = quote('{"id": "u-1", "email": "b@example.com"}', safe="")
    session = parse_session_cookie(value)
    assert session is not None
    assert session.user_id == "u-1"


def test_missing_or_malformed_cookie_is_anonymous():
    assert parse_session_cookie(None) is None
    assert parse_session_cookie("") is None
    assert parse_session_cookie("not json") is None
    assert parse_session_cookie('{"email": "no-id@example.com"}') is None
    assert parse_session_cookie("[1, 2]") is None


def test_session_from_cookie_header():
    value = quote('{"id": "42"}', safe="")
    header = f"theme=dark; user_session={value}; other=1"
    assert session_from_cookie_header(header).user_id == "42"
    assert session_from_cookie_header(f"sid={value}", name="sid").user_id == "42"
    assert session_from_cookie_header("theme=dark") is None
    assert session_from_cookie_header(None) is None
