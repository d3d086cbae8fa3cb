from apichain.extraction import build_step_scope, extract_fields


def test_extract_flat_and_nested():
    body = {"id": 5, "user": {"name": "Ann", "roles": ["admin"]}}

    extracted = extract_fields(body, {"userId": "id", "name": "user.name", "roles": "user.roles"})

    assert extracted == {"userId": 5, "name": "Ann", "roles": ["admin"]}


def test_missing_segment_yields_none():
    extracted = extract_fields({"user": {}}, {"email": "user.email", "deep": "a.b.c"})

    assert extracted == {"email": None, "deep": None}


def test_non_object_body_yields_none():
    assert extract_fields("plain text", {"id": "id"}) == {"id": None}
    assert extract_fields([{"id": 1}], {"id": "id"}) == {"id": None}
    assert extract_fields(None, {"id": "id"}) == {"id": None}


def test_keys_are_addressed_literally():
    body = {"x-request-id": "abc", "data": {"2fa": True, "with space": 1}}

    extracted = extract_fields(body, {"rid": "x-request-id", "tfa": "data.2fa", "sp": "data.with space"})

    assert extracted == {"rid": "abc", "tfa": True, "sp": 1}


def test_falsy_values_are_kept():
    extracted = extract_fields({"count": 0, "active": False, "name": ""}, {"c": "count", "a": "active", "n": "name"})

    assert extracted == {"c": 0, "a": False, "n": ""}


def test_build_step_scope():
    updates = build_step_scope("login", {"token": "t"}, {"token": "t", "ttl": 60}, 200, "application/json")

    assert updates == {
        "token": "t",
        "login": {
            "token": "t",
            "body": {"token": "t", "ttl": 60},
            "status": 200,
            "contentType": "application/json",
        },
    }


def test_build_step_scope_without_extractions():
    updates = build_step_scope("ping", {}, "pong", 204, "")

    assert updates == {"ping": {"body": "pong", "status": 204, "contentType": ""}}
