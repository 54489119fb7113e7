"""Tests for the MSAL-backed identity provider, with msal.PublicClientApplication mocked out."""

import sys
import time
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest import mock

import requests

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from graph_cli.auth.provider import DeviceFlow, MsalIdentityProvider, token_response_from_result
from graph_cli.config import DEFAULT_TOKEN_LIFETIME_SECONDS
from graph_cli.errors import AuthenticationError, AuthorizationPendingError

SCOPES = ["User.Read", "Mail.Read"]


def _flow_dict(**overrides) -> dict:
    flow = {
        "user_code": "ABCD-1234",
        "device_code": "device-xyz",
        "verification_uri": "https://microsoft.com/devicelogin",
        "expires_in": 900,
        "expires_at": time.time() + 900,
        "interval": 5,
        "message": "To sign in, use a web browser to open https://microsoft.com/devicelogin",
    }
    flow.update(overrides)
    return flow


def _success(**overrides) -> dict:
    result = {
        "access_token": "new-access",
        "refresh_token": "new-refresh",
        "expires_in": 3599,
        "scope": "User.Read Mail.Read",
        "id_token_claims": {"preferred_username": "ann@example.com"},
    }
    result.update(overrides)
    return result


class TestTokenResponseFromResult(unittest.TestCase):
    def test_space_separated_scope_string(self):
        token = token_response_from_result(_success(), ["Other.Read"])
        self.assertEqual(token.scopes, ["User.Read", "Mail.Read"])
        self.assertEqual(token.access_token, "new-access")
        self.assertEqual(token.refresh_token, "new-refresh")

    def test_scope_list(self):
        token = token_response_from_result(_success(scope=["Calendars.Read"]), SCOPES)
        self.assertEqual(token.scopes, ["Calendars.Read"])

    def test_missing_scope_falls_back_to_requested(self):
        result = _success()
        del result["scope"]
        self.assertEqual(token_response_from_result(result, SCOPES).scopes, SCOPES)

    def test_account_from_claims(self):
        token = token_response_from_result(_success(id_token_claims={"upn": "bob@example.com"}), SCOPES)
        self.assertEqual(token.account, "bob@example.com")

        token = token_response_from_result(
            _success(id_token_claims={"email": "eve@example.com", "upn": "other@example.com"}), SCOPES
        )
        self.assertEqual(token.account, "eve@example.com")

    def test_no_claims_means_no_account(self):
        result = _success()
        del result["id_token_claims"]
        self.assertIsNone(token_response_from_result(result, SCOPES).account)

    def test_default_lifetime_without_expires_in(self):
        result = _success()
        del result["expires_in"]
        before = datetime.now(timezone.utc)
        token = token_response_from_result(result, SCOPES)
        expected = before + timedelta(seconds=DEFAULT_TOKEN_LIFETIME_SECONDS)
        self.assertLess(abs((token.expires_at - expected).total_seconds()), 5)


class MsalProviderTestCase(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch("graph_cli.auth.provider.msal.PublicClientApplication")
        self.app_class = patcher.start()
        self.addCleanup(patcher.stop)
        self.app = self.app_class.return_value
        self.provider = MsalIdentityProvider("client-1", "contoso")

    def _started_flow(self) -> DeviceFlow:
        self.app.initiate_device_flow.return_value = _flow_dict()
        return self.provider.initiate_device_flow(SCOPES)


class TestApplication(MsalProviderTestCase):
    def test_app_is_built_once_on_first_use(self):
        self.app_class.assert_not_called()
        self.assertIs(self.provider.app, self.provider.app)
        self.app_class.assert_called_once_with(
            client_id="client-1",
            authority="https://login.microsoftonline.com/contoso",
        )

    def test_unknown_tenant_raises_authentication_error(self):
        self.app_class.side_effect = ValueError("Unable to get authority configuration")
        with self.assertRaises(AuthenticationError) as ctx:
            self.provider.initiate_device_flow(SCOPES)
        self.assertIn("Unable to get authority configuration", str(ctx.exception))

    def test_authority_discovery_offline_raises_authentication_error(self):
        self.app_class.side_effect = requests.ConnectionError("Name or service not known")
        with self.assertRaises(AuthenticationError) as ctx:
            self.provider.acquire_token_by_refresh_token("rt", SCOPES)
        self.assertIn("cannot reach the identity provider", str(ctx.exception))


class TestDeviceFlow(MsalProviderTestCase):
    def test_initiate(self):
        flow = self._started_flow()
        self.app.initiate_device_flow.assert_called_once_with(scopes=SCOPES)
        self.assertEqual(flow.user_code, "ABCD-1234")
        self.assertEqual(flow.verification_uri, "https://microsoft.com/devicelogin")
        self.assertEqual(flow.scopes, SCOPES)
        self.assertEqual(flow.state["device_code"], "device-xyz")
        self.assertFalse(flow.is_expired())

    def test_initiate_error_dict(self):
        self.app.initiate_device_flow.return_value = {
            "error": "invalid_client",
            "error_description": "AADSTS700016: Application not found",
        }
        with self.assertRaises(AuthenticationError) as ctx:
            self.provider.initiate_device_flow(SCOPES)
        self.assertEqual(str(ctx.exception), "AADSTS700016: Application not found")

    def test_initiate_error_without_description(self):
        self.app.initiate_device_flow.return_value = {"error": "invalid_request"}
        with self.assertRaisesRegex(AuthenticationError, "^invalid_request$"):
            self.provider.initiate_device_flow(SCOPES)

    def test_initiate_offline(self):
        self.app.initiate_device_flow.side_effect = requests.ConnectionError("offline")
        with self.assertRaisesRegex(AuthenticationError, "cannot reach the identity provider"):
            self.provider.initiate_device_flow(SCOPES)

    def test_poll_once_pending(self):
        flow = self._started_flow()
        for error in ("authorization_pending", "slow_down"):
            self.app.acquire_token_by_device_flow.return_value = {"error": error}
            with self.assertRaises(AuthorizationPendingError):
                self.provider.acquire_token_by_device_flow(flow, wait=False)

        _, kwargs = self.app.acquire_token_by_device_flow.call_args
        exit_condition = kwargs["exit_condition"]
        self.assertTrue(exit_condition({}))

    def test_blocking_poll_has_no_exit_condition(self):
        flow = self._started_flow()
        self.app.acquire_token_by_device_flow.return_value = _success()
        token = self.provider.acquire_token_by_device_flow(flow)
        args, kwargs = self.app.acquire_token_by_device_flow.call_args
        self.assertEqual(args[0]["device_code"], "device-xyz")
        self.assertNotIn("exit_condition", kwargs)
        self.assertEqual(token.account, "ann@example.com")

    def test_poll_declined(self):
        flow = self._started_flow()
        self.app.acquire_token_by_device_flow.return_value = {
            "error": "authorization_declined",
            "error_description": "The user declined",
        }
        with self.assertRaises(AuthenticationError) as ctx:
            self.provider.acquire_token_by_device_flow(flow, wait=False)
        self.assertNotIsInstance(ctx.exception, AuthorizationPendingError)
        self.assertEqual(str(ctx.exception), "The user declined")

    def test_poll_offline(self):
        flow = self._started_flow()
        self.app.acquire_token_by_device_flow.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(AuthenticationError) as ctx:
            self.provider.acquire_token_by_device_flow(flow, wait=False)
        self.assertNotIsInstance(ctx.exception, AuthorizationPendingError)


class TestRefresh(MsalProviderTestCase):
    def test_success(self):
        self.app.acquire_token_by_refresh_token.return_value = _success(scope=["User.Read"])
        token = self.provider.acquire_token_by_refresh_token("rt", SCOPES)
        self.app.acquire_token_by_refresh_token.assert_called_once_with("rt", scopes=SCOPES)
        self.assertEqual(token.access_token, "new-access")
        self.assertEqual(token.scopes, ["User.Read"])

    def test_error_dict(self):
        self.app.acquire_token_by_refresh_token.return_value = {
            "error": "invalid_grant",
            "error_description": "AADSTS70008: The refresh token has expired",
        }
        with self.assertRaisesRegex(AuthenticationError, "refresh token has expired"):
            self.provider.acquire_token_by_refresh_token("rt", SCOPES)

    def test_empty_result(self):
        self.app.acquire_token_by_refresh_token.return_value = None
        with self.assertRaisesRegex(AuthenticationError, "Refresh returned no result"):
            self.provider.acquire_token_by_refresh_token("rt", SCOPES)

    def test_timeout(self):
        self.app.acquire_token_by_refresh_token.side_effect = requests.Timeout("read timed out")
        with self.assertRaisesRegex(AuthenticationError, "^Token refresh failed: cannot reach"):
            self.provider.acquire_token_by_refresh_token("rt", SCOPES)


if __name__ == "__main__":
    unittest.main()
