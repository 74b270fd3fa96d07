from promptvault.log_sanitizer import REDACTED, sanitize_headers_for_log, sanitize_payload_for_log


def test_sanitize_headers_masks_credentials():
    headers = {
        "Authorization": "Bearer secret",
        "X-API-Key": "sk-123",
        "x-goog-api-key": "AIza",
        "Cookie": "session=abc",
        "Content-Type": "application/json",
        "User-Agent": "pytest",
    }

    sanitized = sanitize_headers_for_log(headers)

    assert sanitized["Authorization"] == REDACTED
    assert sanitized["X-API-Key"] == REDACTED
    assert sanitized["x-goog-api-key"] == REDACTED
    assert sanitized["Cookie"] == REDACTED
    assert sanitized["Content-Type"] == "application/json"
    assert sanitized["User-Agent"] == "pytest"


def test_sanitize_payload_is_recursive_and_non_mutating():
    payload = {
        "provider": "openai",
        "apiKey": "sk-123",
        "nested": {"access_token": "t", "model": "gpt-4o"},
        "items": [{"secret": "s"}, "plain"],
    }

    sanitized = sanitize_payload_for_log(payload, mask_token="***")

    assert sanitized == {
        "provider": "openai",
        "apiKey": "***",
        "nested": {"access_token": "***", "model": "gpt-4o"},
        "items": [{"secret": "***"}, "plain"],
    }
    assert payload["apiKey"] == "sk-123"
