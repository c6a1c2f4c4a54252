#!/usr/bin/env python3
"""
Tests for LoginRequest: form construction, stealth handling and the
classify/retry loop driven against scripted server answers.
"""

from __future__ import annotations

import sys
from unittest.mock import patch

from core.exceptions import LoginTimeoutError, TransportError
from core.login_classifier import LoginOutcome
from core.login_request import Credentials, LoginMode, LoginRequest
from core.protocols import DisplayState
from core.retry import COUNTDOWN_MESSAGE, LoginAction, RetryDecision
from testing.protocol_mocks import MockReply, build_test_coordinator
from testing.test_framework import TestSuite
from testing.test_utilities import create_standard_test_runner

SUCCESS = MockReply(302, location="main.php")


def _request(harness, login_name: str = "wizard", secret: str = "hunter2") -> LoginRequest:
    return LoginRequest(Credentials.from_login_name(login_name, secret), harness.coordinator)


def _test_credentials_strip_every_marker() -> None:
    creds = Credentials.from_login_name("wiz/qard/q", "pw")
    assert creds.identity == "wizard"
    assert creds.stealthy

    plain = Credentials.from_login_name("wizard", "pw")
    assert plain.identity == "wizard" and not plain.stealthy
    assert "pw" not in repr(plain), "Secret must not appear in repr"

    assert Credentials.from_login_name(None, "pw").identity == ""


def _test_form_fields() -> None:
    harness = build_test_coordinator([SUCCESS])
    result = _request(harness).execute(LoginMode.LOGIN)

    assert result.succeeded
    assert harness.transport.submitted == [
        {"password": "hunter2", "secure": "0", "loginname": "wizard", "loggingin": "Yup."}
    ]


def _test_stealthy_credentials_append_marker() -> None:
    harness = build_test_coordinator([SUCCESS])
    _request(harness, "wizard/q").execute(LoginMode.LOGIN)
    assert harness.transport.submitted[0]["loginname"] == "wizard/q"


def _test_stealth_preference_appends_marker() -> None:
    harness = build_test_coordinator([SUCCESS], flags={"stealth_login": True})
    request = _request(harness)
    request.execute(LoginMode.LOGIN)
    assert harness.transport.submitted[0]["loginname"] == "wizard/q"
    assert not request.stealthy, "stealth_login must not change the attempt itself"


def _test_ping_stealthy_timein_persists() -> None:
    harness = build_test_coordinator([SUCCESS, SUCCESS], flags={"ping_stealthy_timein": True})
    request = _request(harness)

    request.execute(LoginMode.LOGIN)
    assert harness.transport.submitted[0]["loginname"] == "wizard", "First submission is not stealthy"
    assert request.stealthy

    harness.preferences.flags["ping_stealthy_timein"] = False
    request.execute(LoginMode.TIMEIN)
    assert harness.transport.submitted[1]["loginname"] == "wizard/q"


def _test_display_name_recorded() -> None:
    harness = build_test_coordinator()
    _request(harness, "Wizard/q")
    assert harness.preferences.strings[("Wizard", "display_name")] == "Wizard"


def _test_wait_then_resubmit() -> None:
    harness = build_test_coordinator([MockReply(200, "Please wait fifteen minutes."), SUCCESS])
    result = _request(harness).execute(LoginMode.LOGIN)

    assert harness.countdown.calls == [(COUNTDOWN_MESSAGE, 900)]
    assert result.succeeded
    assert result.submissions == 2
    assert harness.transport.reset_count == 2, "Each pass is a full resubmission"
    assert len(harness.transport.submitted) == 2
    assert harness.transport.submitted[0] == harness.transport.submitted[1]


def _test_session_conflict_wait() -> None:
    harness = build_test_coordinator([MockReply(200, "wait a couple of minutes"), SUCCESS])
    _request(harness).execute(LoginMode.LOGIN)
    assert harness.countdown.calls == [(COUNTDOWN_MESSAGE, 75)]


def _test_privilege_denied_disables_alternate_server() -> None:
    for initial in (True, False):
        harness = build_test_coordinator(
            [MockReply(200, "You do not have the privileges to use this server"), SUCCESS],
            flags={"use_alternate_server": initial},
        )
        result = _request(harness).execute(LoginMode.LOGIN)

        assert harness.preferences.flags["use_alternate_server"] is False, initial
        assert harness.countdown.calls == [], "Reconfiguration retries immediately"
        assert result.succeeded and result.submissions == 2
        assert harness.transport.apply_settings_count == 2


def _test_decision_fields_drive_retry() -> None:
    decisions = [
        RetryDecision(LoginAction.WAIT_AND_RETRY, wait_seconds=5, message="Hold on ", disable_alternate_server=True),
        RetryDecision(LoginAction.SUCCEED),
    ]
    harness = build_test_coordinator([MockReply(200, "odd"), SUCCESS], flags={"use_alternate_server": True})
    with patch("core.login_request.resolve_login_action", side_effect=decisions):
        result = _request(harness).execute(LoginMode.LOGIN)

    assert harness.countdown.calls == [("Hold on ", 5)]
    assert harness.preferences.flags["use_alternate_server"] is False
    assert result.submissions == 2


def _test_bad_password_aborts() -> None:
    harness = build_test_coordinator([MockReply(200, "Bad password")])
    result = _request(harness).execute(LoginMode.LOGIN)

    assert result.outcome is LoginOutcome.BAD_CREDENTIALS
    assert result.message == "Bad password."
    assert result.submissions == 1 and len(harness.transport.submitted) == 1, "No retry"
    assert harness.countdown.calls == []
    assert harness.display.messages(DisplayState.ABORT) == ["Bad password."]
    assert not harness.coordinator.is_established()


def _test_200_clears_timestamp() -> None:
    harness = build_test_coordinator([MockReply(200, "Bad password")])
    _request(harness).execute(LoginMode.LOGIN)
    assert harness.coordinator.last_attempt_timestamp is None


def _test_redirect_keeps_timestamp() -> None:
    harness = build_test_coordinator([SUCCESS])
    _request(harness).execute(LoginMode.LOGIN)
    assert harness.coordinator.last_attempt_timestamp == harness.clock.now


def _test_non_200_delegates() -> None:
    harness = build_test_coordinator([MockReply(503, "Service Unavailable")])
    result = _request(harness).execute(LoginMode.LOGIN)

    assert result.outcome is LoginOutcome.TRANSPORT_FAILURE
    assert result.submissions == 1
    assert harness.coordinator.last_attempt_timestamp is not None, "Only a 200 clears the timestamp"
    assert harness.display.messages(DisplayState.ABORT) == []


def _test_transport_error_reported() -> None:
    error = LoginTimeoutError("Timed out", url="https://game.test/login.php", attempts=3)
    harness = build_test_coordinator([error])
    result = _request(harness).execute(LoginMode.LOGIN)

    assert isinstance(error, TransportError)
    assert result.outcome is LoginOutcome.TRANSPORT_FAILURE
    assert result.message == "Timed out"
    assert harness.display.messages(DisplayState.ERROR) == ["Login request failed: Timed out"]


def _test_submission_order() -> None:
    harness = build_test_coordinator([SUCCESS])
    request = _request(harness)
    result = request.execute(LoginMode.LOGIN)

    assert harness.transport.calls == ["reset", "apply_settings", "submit"]
    assert harness.display.force_continue_count == 1
    assert harness.display.messages(DisplayState.CONTINUE)[0] == "Sending login request..."
    assert request.issued_at is not None
    assert result.issued_at == request.issued_at
    assert harness.coordinator.last_attempt is request


def login_request_module_tests() -> bool:
    suite = TestSuite("Login Request", "core/login_request.py")
    suite.start_suite()

    suite.run_test(
        test_name="Credentials from login name",
        test_func=_test_credentials_strip_every_marker,
        test_summary="Every '/q' is stripped and remembered as stealthy",
        functions_tested="Credentials.from_login_name",
        expected_outcome="identity 'wizard', stealthy=True, secret hidden from repr",
    )
    suite.run_test(
        test_name="Form fields",
        test_func=_test_form_fields,
        test_summary="The form carries exactly the four login fields",
        functions_tested="LoginRequest.build_form, LoginRequest.execute",
        expected_outcome="password, secure=0, loginname, loggingin=Yup.",
    )
    suite.run_test(
        test_name="Stealthy credentials",
        test_func=_test_stealthy_credentials_append_marker,
        test_summary="A stealthy attempt submits the marker",
        expected_outcome="loginname 'wizard/q'",
    )
    suite.run_test(
        test_name="Stealth preference",
        test_func=_test_stealth_preference_appends_marker,
        test_summary="stealth_login appends the marker without changing the attempt",
        expected_outcome="loginname 'wizard/q', request.stealthy stays False",
    )
    suite.run_test(
        test_name="Stealthy time-in preference",
        test_func=_test_ping_stealthy_timein_persists,
        test_summary="ping_stealthy_timein makes later submissions stealthy for good",
        method_description="Execute twice, turning the preference off between runs",
        expected_outcome="First submission plain, second stealthy",
    )
    suite.run_test(
        test_name="Display name recorded",
        test_func=_test_display_name_recorded,
        test_summary="Constructing an attempt records the identity's display name",
        expected_outcome="display_name preference set",
    )
    suite.run_test(
        test_name="Rate limit wait",
        test_func=_test_wait_then_resubmit,
        test_summary="The attempt waits out a rate limit, then resubmits from scratch",
        expected_outcome="One 900s countdown, two identical submissions, success",
    )
    suite.run_test(
        test_name="Session conflict wait",
        test_func=_test_session_conflict_wait,
        test_summary="The conflict wait is 75 seconds",
        expected_outcome="One 75s countdown",
    )
    suite.run_test(
        test_name="Privilege denied",
        test_func=_test_privilege_denied_disables_alternate_server,
        test_summary="Refusal by the alternate server turns the alternate server off and retries",
        expected_outcome="use_alternate_server False, no countdown, success on retry",
    )
    suite.run_test(
        test_name="Retry decision fields",
        test_func=_test_decision_fields_drive_retry,
        test_summary="The loop waits and reconfigures according to the decision it is given",
        functions_tested="LoginRequest.execute",
        expected_outcome="Countdown of the decided length, alternate server off, one resubmission",
    )
    suite.run_test(
        test_name="Bad password",
        test_func=_test_bad_password_aborts,
        test_summary="Bad credentials abort with the server message",
        expected_outcome="BAD_CREDENTIALS shown with ABORT",
    )
    suite.run_test(
        test_name="200 clears timestamp",
        test_func=_test_200_clears_timestamp,
        test_summary="A failing 200 answer clears the last submission timestamp",
        expected_outcome="last_attempt_timestamp is None",
    )
    suite.run_test(
        test_name="Redirect keeps timestamp",
        test_func=_test_redirect_keeps_timestamp,
        test_summary="A successful redirect keeps the timestamp so follow-up triggers are suppressed",
        expected_outcome="timestamp equals the submission time",
    )
    suite.run_test(
        test_name="Non-200 delegates",
        test_func=_test_non_200_delegates,
        test_summary="HTTP errors without a redirect are returned to the caller",
        expected_outcome="TRANSPORT_FAILURE after one submission, no abort message",
    )
    suite.run_test(
        test_name="Transport error",
        test_func=_test_transport_error_reported,
        test_summary="Transport exceptions end the execution and are reported",
        expected_outcome="TRANSPORT_FAILURE with ERROR status",
    )
    suite.run_test(
        test_name="Submission order",
        test_func=_test_submission_order,
        test_summary="Each pass resets the transport, applies settings, then submits",
        expected_outcome="reset, apply_settings, submit",
    )

    return suite.finish_suite()


run_comprehensive_tests = create_standard_test_runner(login_request_module_tests)


def test_login_request_suite() -> None:
    assert run_comprehensive_tests()


if __name__ == "__main__":
    success = run_comprehensive_tests()
    sys.exit(0 if success else 1)
