import pytest
from pydantic import ValidationError

from tender_chat.core.config import Settings, settings


@pytest.mark.parametrize("missing", ["CHAT_API_URL", "API_BASE_URL", "XLSX_TEMPLATE_URL"])
def test_required_urls(missing):
    """Test each required endpoint fails loudly when empty."""
    with pytest.raises(ValidationError, match=missing):
        Settings(**{missing: ""})


def test_data_row_must_follow_header_row():
    """Test the template layout is validated."""
    with pytest.raises(ValidationError):
        Settings(XLSX_HEADER_ROW=3, XLSX_DATA_START_ROW=2)


def test_export_url_and_cors():
    """Test derived export URL and comma separated CORS origins."""
    custom = Settings(API_BASE_URL="http://api.test/", EXPORT_API_PATH="/export", CORS_ORIGINS="http://a, http://b")

    assert custom.export_api_url == "http://api.test/export"
    assert custom.CORS_ORIGINS == ["http://a", "http://b"]
    assert settings.LIBRARY_POLL_MAX_ATTEMPTS == 100
