"""Unit tests for CORS header computation."""
import sys
sys.path.insert(0, 'backend')

from services.cors import get_cors_headers, resolve_origin

ALLOWED = ["https://app.example.com", "https://staging.example.com"]


def test_allowed_origin_is_echoed():
    assert resolve_origin("https://staging.example.com", ALLOWED) == "https://staging.example.com"


def test_unknown_origin_falls_back_to_first_entry():
    assert resolve_origin("https://other.example.com", ALLOWED) == "https://app.example.com"


def test_missing_origin_falls_back_to_first_entry():
    assert resolve_origin(None, ALLOWED) == "https://app.example.com"


def test_header_set():
    headers = get_cors_headers("https://app.example.com", ALLOWED)

    assert headers == {
        "Access-Control-Allow-Origin": "https://app.example.com",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Max-Age": "86400",
    }


def test_default_allow_list_includes_dev_server():
    headers = get_cors_headers("http://localhost:5173")
    assert headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
