import pytest

from apichain.templates import contains_template, render_value, resolve, resolve_headers


def test_nested_path():
    assert resolve("{{foo.bar}}", {"foo": {"bar": "x"}}) == "x"


def test_missing_field_renders_empty():
    assert resolve("{{foo.missing}}", {"foo": {}}) == ""
    assert resolve("id={{nothing.here}}", {}) == "id="


@pytest.mark.parametrize(
    "template",
    [
        "",
        "http://localhost/users/1",
        "{ not a token }",
        "{{ not-a-path }}",
        "{{}}",
    ],
)
def test_plain_strings_unchanged(template):
    assert resolve(template, {"foo": "bar"}) == template


def test_whitespace_inside_braces():
    assert resolve("{{  user.id  }}", {"user": {"id": "7"}}) == "7"


def test_multiple_tokens():
    scope = {"host": "api.local", "step1": {"userId": 42}}
    assert resolve("http://{{host}}/users/{{step1.userId}}?v={{ step1.userId }}", scope) == "http://api.local/users/42?v=42"


def test_path_through_non_object_is_missing():
    assert resolve("{{token.value}}", {"token": "abc"}) == ""
    assert resolve("{{items.id}}", {"items": [{"id": 1}]}) == ""


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, ""),
        ("text", "text"),
        (True, "true"),
        (False, "false"),
        (42, "42"),
        (1.5, "1.5"),
        (1.0, "1"),
        (-3.0, "-3"),
        ({"a": 1, "b": [1, 2]}, '{"a":1,"b":[1,2]}'),
        (["x", "y"], '["x","y"]'),
    ],
)
def test_render_value(value, expected):
    assert render_value(value) == expected


def test_resolve_headers():
    headers = {"Authorization": "Bearer {{login.token}}", "Accept": "application/json"}
    resolved = resolve_headers(headers, {"login": {"token": "t0k"}})

    assert resolved == {"Authorization": "Bearer t0k", "Accept": "application/json"}
    assert headers["Authorization"] == "Bearer {{login.token}}"


def test_contains_template():
    assert contains_template("a {{ b }} c")
    assert not contains_template("a { b } c")


def test_integral_float_in_url():
    assert resolve("/users/{{create.id}}", {"create": {"id": 7.0}}) == "/users/7"
