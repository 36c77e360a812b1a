"""
Wire protocol tests.

Verifies:
- envelope shape (data and error only when present)
- encode/parse round trip keeps success/message/data
- malformed request lines raise ProtocolError
"""

import json

import pytest

from stockline.errors import InsufficientStock, ProtocolError
from stockline.server.protocol import Response, decode_request, decode_response, encode_response


class TestEnvelope:
    def test_success_envelope(self):
        data = Response.ok("Done", {"id": 1}).to_dict()
        assert data["success"] is True
        assert data["message"] == "Done"
        assert data["data"] == {"id": 1}
        assert "error" not in data
        assert data["timestamp"].endswith("Z")

    def test_success_without_data_omits_field(self):
        assert "data" not in Response.ok("Logged out").to_dict()

    def test_failure_from_error(self):
        data = Response.from_error(InsufficientStock()).to_dict()
        assert data == {
            "success": False,
            "message": "Insufficient stock",
            "error": "INSUFFICIENT_STOCK",
            "timestamp": data["timestamp"],
        }


class TestRoundTrip:
    @pytest.mark.parametrize(
        "response",
        [
            Response.ok("Product retrieved", {"id": 3, "name": "Café crème", "quantity": 0, "tags": [1, 2]}),
            Response.ok("Retrieved 0 products", []),
            Response.fail("Forbidden", "FORBIDDEN"),
        ],
    )
    def test_round_trip(self, app, response):
        raw = encode_response(response, app.json)
        assert raw.endswith(b"\n")
        assert raw.count(b"\n") == 1

        parsed = decode_response(raw, app.json)
        assert parsed.success == response.success
        assert parsed.message == response.message
        assert parsed.data == response.data
        assert parsed.error == response.error
        assert parsed.timestamp == response.timestamp


class TestDecodeRequest:
    def test_valid_request(self, app):
        action, payload = decode_request(b'{"action": "get_product", "product_id": 4}\n', app.json)
        assert action == "get_product"
        assert payload["product_id"] == 4

    @pytest.mark.parametrize(
        "line",
        [
            b"this is not json\n",
            b"[1, 2, 3]\n",
            b'{"product_id": 4}\n',
            b'{"action": 42}\n',
            b'{"action": "  "}\n',
            b"\xff\xfe\n",
        ],
    )
    def test_malformed_lines(self, app, line):
        with pytest.raises(ProtocolError):
            decode_request(line, app.json)

    def test_invalid_json_message(self, app):
        with pytest.raises(ProtocolError) as exc_info:
            decode_request("{not json", app.json)
        assert exc_info.value.message == "Invalid JSON format"

    def test_oversized_integer_literal(self, app):
        line = b'{"action": "login", "username": ' + b"9" * 5000 + b"}\n"
        with pytest.raises(ProtocolError) as exc_info:
            decode_request(line, app.json)
        assert exc_info.value.message == "Invalid JSON format"

    def test_deeply_nested_arrays(self, app):
        with pytest.raises(ProtocolError) as exc_info:
            decode_request(b"[" * 30000 + b"\n", app.json)
        assert exc_info.value.message == "Invalid JSON format"

    def test_encoded_line_is_plain_json(self, app):
        raw = encode_response(Response.ok("hi", {"a": 1}), app.json)
        assert json.loads(raw)["data"] == {"a": 1}
