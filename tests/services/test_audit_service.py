"""Tests for the inspection audit helpers."""

import pytest
from unittest.mock import MagicMock

from app.services.audit_service import get_client_ip, parse_device_info


class TestParseDeviceInfo:

    @pytest.mark.parametrize(
        "user_agent,browser,platform,is_mobile",
        [
            ("Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 Chrome/120.0 Mobile Safari/537.36",
             "Chrome", "Android", True),
            ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) AppleWebKit/605.1.15 Version/17.2 Mobile Safari/604.1",
             "Safari", "iOS", True),
            ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0 Safari/537.36 Edg/120.0",
             "Edge", "Windows", False),
            ("Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
             "Firefox", "Linux", False),
        ],
    )
    def test_known_agents(self, user_agent, browser, platform, is_mobile):
        info = parse_device_info(user_agent)
        assert info == {"browser": browser, "platform": platform, "is_mobile": is_mobile}

    def test_missing_agent(self):
        assert parse_device_info(None) == {"browser": "Unknown", "platform": "Unknown", "is_mobile": False}


class TestGetClientIp:

    def test_forwarded_header_wins(self):
        request = MagicMock()
        request.headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}
        assert get_client_ip(request) == "203.0.113.7"

    def test_falls_back_to_peer(self):
        request = MagicMock()
        request.headers = {}
        request.client.host = "10.0.0.5"
        assert get_client_ip(request) == "10.0.0.5"

    def test_unknown_without_client(self):
        request = MagicMock()
        request.headers = {}
        request.client = None
        assert get_client_ip(request) == "unknown"
