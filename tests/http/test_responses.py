"""Tests for response wrappers."""

import httpx

from restrecord.http import HttpResponse, ProxyResponse, Response


def test_http_response_decodes_json():
    response = HttpResponse(httpx.Response(200, json=[1, 2]))

    assert response.get_data() == [1, 2]
    assert isinstance(response, Response)


def test_http_response_empty_body_is_none():
    assert HttpResponse(httpx.Response(204)).get_data() is None


def test_http_response_falls_back_to_text():
    assert HttpResponse(httpx.Response(500, text="Server Error")).get_data() == "Server Error"


def test_proxy_response_defaults():
    response = ProxyResponse("201")

    assert response.get_status() == 201
    assert response.get_data() == {}
    assert response.get_headers() == {}
    assert isinstance(response, Response)


def test_proxy_response_invalid_status_is_zero():
    assert ProxyResponse("abc").get_status() == 0


def test_proxy_response_validation_errors_are_its_data():
    response = ProxyResponse(422, {"title": ["Required"]}, {"X-Id": "1"})

    assert response.get_validation_errors() == {"title": ["Required"]}
    assert response.get_headers() == {"X-Id": "1"}
