from fixture_bot.config.settings import settings
from fixture_bot.logging.setup import sensitive_data_filter


class TestSensitiveDataFilter:
    def test_masks_bound_secrets(self):
        record = {"message": "calling serpapi", "extra": {"api_key": "abcdefghijklmnop"}}
        assert sensitive_data_filter(record) is True
        assert record["extra"]["api_key"] == "abcd****mnop"

    def test_short_secrets_fully_masked(self):
        record = {"message": "x", "extra": {"token": "short"}}
        sensitive_data_filter(record)
        assert record["extra"]["token"] == "********"

    def test_configured_keys_removed_from_messages(self, monkeypatch):
        monkeypatch.setattr(settings, "serpapi_api_key", "serp-secret-123")
        record = {"message": "GET /search.json?api_key=serp-secret-123", "extra": {}}
        sensitive_data_filter(record)
        assert "serp-secret-123" not in record["message"]
