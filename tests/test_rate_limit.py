from starlette.requests import Request

from journal_api.rate_limit import get_user_id_or_ip


def _request(user_id=None):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/prompts/generate",
        "headers": [],
        "client": ("203.0.113.7", 5000),
        "query_string": b"",
    }
    request = Request(scope)
    if user_id:
        request.state.user_id = user_id
    return request


def test_authenticated_requests_are_keyed_by_user():
    assert get_user_id_or_ip(_request("alice")) == "user:alice"


def test_anonymous_requests_are_keyed_by_ip():
    assert get_user_id_or_ip(_request()) == "ip:203.0.113.7"
