"""
SourceProbe Tests

Each probe is one GET whose outcome is classified, never raised.
"""

from unittest.mock import MagicMock, PropertyMock

import pytest
import requests

from depotfetch.download.interfaces import Miss, Payload, TransportError
from depotfetch.download.probe import SourceProbe

pytestmark = [pytest.mark.unit, pytest.mark.core_downloads]


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


def _response(status_code, content=b""):
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    return response


class TestSourceProbe:
    """Classification and logging of single probe attempts."""

    def test_status_200_is_payload(self, session, mocker):
        session.get.return_value = _response(200, b"data")
        mock_logger = mocker.patch("depotfetch.download.probe.logger")

        outcome = SourceProbe(session).probe("https://cdn.example.com/a/b.lua", 20)

        assert outcome == Payload(b"data")
        session.get.assert_called_once_with("https://cdn.example.com/a/b.lua", timeout=20)
        mock_logger.info.assert_called_once_with("[OK] Success from cdn.example.com")

    @pytest.mark.parametrize("status_code", [404, 403, 500])
    def test_other_status_is_miss(self, session, mocker, status_code):
        session.get.return_value = _response(status_code)
        mock_logger = mocker.patch("depotfetch.download.probe.logger")

        outcome = SourceProbe(session).probe("https://mirror.example.org/x", 20)

        assert outcome == Miss(status_code)
        mock_logger.warning.assert_called_once_with(
            f"[FAIL] Status {status_code} from mirror.example.org"
        )
        mock_logger.info.assert_not_called()

    def test_connection_error_is_transport_error(self, session, mocker):
        session.get.side_effect = requests.ConnectionError("refused")
        mock_logger = mocker.patch("depotfetch.download.probe.logger")

        outcome = SourceProbe(session).probe("https://down.example.com/x", 20)

        assert isinstance(outcome, TransportError)
        assert "refused" in outcome.description
        assert mock_logger.warning.call_count == 1
        assert "[ERROR] Failed to contact down.example.com" in mock_logger.warning.call_args[0][0]

    def test_timeout_is_transport_error(self, session):
        session.get.side_effect = requests.Timeout("read timed out")

        outcome = SourceProbe(session).probe("https://slow.example.com/x", 600)

        assert isinstance(outcome, TransportError)
        session.get.assert_called_once_with("https://slow.example.com/x", timeout=600)

    def test_unreadable_body_is_transport_error(self, session):
        response = MagicMock()
        response.status_code = 200
        type(response).content = PropertyMock(
            side_effect=requests.exceptions.ChunkedEncodingError("broken")
        )
        session.get.return_value = response

        outcome = SourceProbe(session).probe("https://cdn.example.com/x", 20)

        assert isinstance(outcome, TransportError)

    def test_no_retry_on_failure(self, session):
        session.get.return_value = _response(503)

        SourceProbe(session).probe("https://cdn.example.com/x", 20)

        assert session.get.call_count == 1

    def test_default_session_carries_user_agent(self):
        probe = SourceProbe()
        assert probe.session.headers["User-Agent"].startswith("depotfetch/")
