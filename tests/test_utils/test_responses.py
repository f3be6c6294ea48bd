"""
Tests for the response envelopes.
"""

import json
from datetime import datetime

from core.responses import error, no_content, success, with_meta


def body(response):
    return json.loads(response.body)


class TestSuccess:

    def test_success_envelope(self):
        response = success({"id": 1})

        assert response.status_code == 200
        assert body(response) == {"success": True, "code": 200, "data": {"id": 1}}

    def test_code_follows_status(self):
        response = success([1, 2], 201)

        assert response.status_code == 201
        assert body(response)["code"] == 201

    def test_explicit_code(self):
        response = success("ok", 200, code="USER_CREATED")

        assert body(response)["code"] == "USER_CREATED"

    def test_data_is_json_encoded(self):
        response = success({"at": datetime(2024, 1, 2, 3, 4, 5)})

        assert body(response)["data"] == {"at": "2024-01-02T03:04:05"}


class TestError:

    def test_plain_message_is_wrapped(self):
        response = error("Something broke")

        assert response.status_code == 400
        assert body(response) == {
            "success": False,
            "code": 400,
            "errors": {"message": "Something broke"},
        }

    def test_structured_errors_kept(self):
        response = error({"email": ["taken"]}, 422)

        assert body(response) == {"success": False, "code": 422, "errors": {"email": ["taken"]}}

    def test_list_errors_kept(self):
        assert body(error(["a", "b"]))["errors"] == ["a", "b"]

    def test_non_string_message(self):
        assert body(error(404, 404))["errors"] == {"message": "404"}


class TestWithMeta:

    def test_meta_is_lifted(self):
        response = with_meta({"data": [1, 2], "meta": {"pagination": {"total": 2}}})

        assert body(response) == {
            "success": True,
            "code": 200,
            "data": {"data": [1, 2]},
            "meta": {"pagination": {"total": 2}},
        }

    def test_missing_meta_is_null(self):
        assert body(with_meta({"data": []}))["meta"] is None


class TestNoContent:

    def test_no_content(self):
        response = no_content()

        assert response.status_code == 204
        assert response.body == b""
