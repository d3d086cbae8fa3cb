from http import HTTPStatus

import pytest
from http_server_mock import HttpServerMock

from apichain.client import HttpExecutor
from apichain.engine import ChainExecutor

app = HttpServerMock(__name__)

USERS = {}


@app.post("/users")
def create_user():
    from flask import request

    user = {"id": len(USERS) + 1, **request.get_json()}
    USERS[user["id"]] = user
    return user, HTTPStatus.CREATED


@app.get("/users/<int:user_id>")
def get_user(user_id: int):
    from flask import request

    if request.headers.get("Authorization") != "Bearer token-1":
        return {"error": "unauthorized"}, HTTPStatus.UNAUTHORIZED
    user = USERS.get(user_id)
    if user is None:
        return {"error": "not found"}, HTTPStatus.NOT_FOUND
    return user, HTTPStatus.OK


@app.post("/login")
def login():
    return {"token": "token-1", "expires": 3600}, HTTPStatus.OK


@app.route("/echo", methods=["POST", "PUT", "PATCH"])
def echo():
    from flask import request

    return {
        "method": request.method,
        "content_type": request.content_type,
        "user_agent": request.headers.get("User-Agent"),
        "text": request.get_data(as_text=True),
    }, HTTPStatus.OK


@app.get("/text")
def text():
    return "plain pong", HTTPStatus.OK, {"Content-Type": "text/plain"}


@app.get("/redirect")
def redirect():
    return "", HTTPStatus.FOUND, {"Location": "/text"}


@pytest.fixture
def server():
    USERS.clear()
    with app.run("localhost", 5000):
        yield "http://localhost:5000"


@pytest.fixture
def executor(store, settings):
    with HttpExecutor(settings.user_agent) as client:
        yield ChainExecutor(store, client, settings)
