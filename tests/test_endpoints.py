"""Tests for backoffice endpoint resolution."""

from umbraco_hosted_mcp.oauth.endpoints import get_backoffice_endpoints


class TestBackofficeEndpoints:
    def test_single_base_url(self):
        endpoints = get_backoffice_endpoints("https://cms.example.com/")
        assert (
            endpoints.authorization_endpoint
            == "https://cms.example.com/umbraco/management/api/v1/security/back-office/authorize"
        )
        assert (
            endpoints.token_endpoint
            == "https://cms.example.com/umbraco/management/api/v1/security/back-office/token"
        )

    def test_server_override_only_affects_token_endpoint(self):
        endpoints = get_backoffice_endpoints("https://localhost:44331", "http://localhost:56472")
        assert endpoints.authorization_endpoint.startswith("https://localhost:44331/")
        assert endpoints.token_endpoint.startswith("http://localhost:56472/")
