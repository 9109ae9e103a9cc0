"""
Tests for the PostgREST client.
"""

import pytest
import requests
from unittest.mock import MagicMock

from sliceflow.core.error_handler import APIError, ConfigurationError
from sliceflow.storage.rest_client import RestClient


class TestRestClient:

    def setup_method(self):
        self.session = MagicMock(spec=requests.Session)
        self.client = RestClient("https://db.test/rest/v1/", api_key="service-key", timeout=4, session=self.session)

    @pytest.mark.parametrize("base_url", [None, ""])
    def test_missing_base_url(self, base_url):
        with pytest.raises(ConfigurationError) as excinfo:
            RestClient(base_url, api_key="service-key")
        assert excinfo.value.component == "storage"
        assert excinfo.value.missing_keys == ["storage.rest_url"]

    def test_select(self):
        response = MagicMock()
        response.content = b'[{"id": "job-1"}]'
        response.json.return_value = [{"id": "job-1"}]
        self.session.request.return_value = response

        rows = self.client.select("campaign_queue", {"id": "eq.job-1"}, limit=1)

        assert rows == [{"id": "job-1"}]
        method, url = self.session.request.call_args.args
        assert (method, url) == ("GET", "https://db.test/rest/v1/campaign_queue")
        kwargs = self.session.request.call_args.kwargs
        assert kwargs["params"] == {"select": "*", "id": "eq.job-1", "limit": "1"}
        assert kwargs["headers"]["Authorization"] == "Bearer service-key"
        assert kwargs["timeout"] == 4

    def test_http_error_becomes_api_error(self):
        error_response = MagicMock()
        error_response.status_code = 503
        error_response.text = "unavailable"
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("503", response=error_response)
        self.session.request.return_value = response

        with pytest.raises(APIError) as excinfo:
            self.client.update("campaign_queue", {"id": "eq.job-1"}, {"status": "processing"})
        assert excinfo.value.status_code == 503
