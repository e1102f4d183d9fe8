import unittest
from unittest.mock import Mock

from brainz_scrobbler.classifier import ReplyClassifier, ReplyResult, classify
from brainz_scrobbler.exceptions import RemoteAPIError, TransportOrServerError
from brainz_scrobbler.requests import Reply, ReplyError

from .data.fakes import api_error_reply, json_reply, ok_reply, timeout_reply


class ClassifyTests(unittest.TestCase):
    """Tests for brainz_scrobbler.classifier.classify"""

    def test_success(self):
        classification = classify(ok_reply())
        self.assertEqual(classification.result, ReplyResult.SUCCESS)
        self.assertTrue(classification.ok)
        self.assertEqual(classification.json, {"status": "ok"})
        self.assertFalse(classification.session_expired)
        classification.raise_for_result()

    def test_success_without_body(self):
        classification = classify(Reply(200))
        self.assertTrue(classification.ok)
        self.assertEqual(classification.json, {})

    def test_non_200_status_without_error(self):
        classification = classify(Reply(204, ReplyError.NO_ERROR))
        self.assertEqual(classification.result, ReplyResult.SERVER_ERROR)
        self.assertEqual(classification.message, "Received HTTP code 204")

    def test_transport_error(self):
        classification = classify(timeout_reply())
        self.assertEqual(classification.result, ReplyResult.SERVER_ERROR)
        self.assertEqual(classification.message, "Operation timed out (4)")
        self.assertFalse(classification.session_expired)
        with self.assertRaises(TransportOrServerError):
            classification.raise_for_result()

    def test_server_error_without_structured_body(self):
        reply = Reply(502, ReplyError.UNKNOWN_SERVER_ERROR, "Bad Gateway", b"<html>")
        classification = classify(reply)
        self.assertEqual(classification.result, ReplyResult.SERVER_ERROR)
        self.assertEqual(classification.message, "Bad Gateway (499)")

    def test_code_and_error_body(self):
        classification = classify(api_error_reply("Invalid listen", code=400))
        self.assertEqual(classification.result, ReplyResult.API_ERROR)
        self.assertEqual(classification.message, "Invalid listen (400)")
        with self.assertRaises(RemoteAPIError):
            classification.raise_for_result()

    def test_oauth_error_body(self):
        """error_description takes precedence over code and error"""
        reply = json_reply(
            {"error": "invalid_grant", "error_description": "Token expired", "code": 400},
            status_code=400,
        )
        classification = classify(reply)
        self.assertEqual(classification.result, ReplyResult.API_ERROR)
        self.assertEqual(classification.message, "Token expired")

    def test_structured_body_on_200(self):
        reply = json_reply({"code": 200, "error": "Something odd"})
        classification = classify(reply)
        self.assertEqual(classification.result, ReplyResult.API_ERROR)

    def test_error_alone_is_not_structured(self):
        reply = json_reply({"error": "nope"}, status_code=500)
        classification = classify(reply)
        self.assertEqual(classification.result, ReplyResult.SERVER_ERROR)

    def test_session_expired(self):
        for status_code in (401, 403, 405):
            classification = classify(json_reply({}, status_code=status_code))
            self.assertTrue(classification.session_expired, status_code)

        for status_code in (400, 404, 500):
            classification = classify(json_reply({}, status_code=status_code))
            self.assertFalse(classification.session_expired, status_code)

    def test_session_expired_with_api_error(self):
        classification = classify(api_error_reply("Invalid token", code=401))
        self.assertEqual(classification.result, ReplyResult.API_ERROR)
        self.assertTrue(classification.session_expired)


class ReplyClassifierTests(unittest.TestCase):
    """Tests for brainz_scrobbler.classifier.ReplyClassifier"""

    def setUp(self):
        self.logout = Mock()
        self.classifier = ReplyClassifier(on_session_expired=self.logout)

    def test_logout_on_expired_session(self):
        classification = self.classifier(api_error_reply("Invalid token", code=401))
        self.assertEqual(classification.result, ReplyResult.API_ERROR)
        self.logout.assert_called_once_with()

    def test_no_logout_otherwise(self):
        self.classifier(ok_reply())
        self.classifier(api_error_reply())
        self.classifier(timeout_reply())
        self.logout.assert_not_called()
