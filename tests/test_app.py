"""Tests for the app factory."""

import importlib
import json
import os
import sys
import unittest
from unittest.mock import patch

# Pre-emptive imports to ensure patch targets exist.
from stepladder import create_app


class AppFactoryTestCase(unittest.TestCase):
    """Test case for the app factory."""

    @patch("firebase_admin.initialize_app")
    def test_404_error_handler(self, mock_init_app):
        """Unknown routes answer with a JSON error body."""
        app = create_app({"TESTING": True})

        with app.test_client() as client:
            response = client.get("/non_existent_page")
            self.assertEqual(response.status_code, 404)
            self.assertEqual(response.get_json()["error"], "not_found")
            self.assertFalse(response.get_json()["success"])
        mock_init_app.assert_not_called()

    def test_405_error_handler(self):
        app = create_app({"TESTING": True})
        with app.test_client() as client:
            response = client.patch("/api/groups/")
            self.assertEqual(response.status_code, 405)
            self.assertEqual(response.get_json()["error"], "method_not_allowed")

    def test_config_from_environment(self):
        """Integer settings are read from the environment."""
        env_vars = {
            "SECRET_KEY": "s3cret",
            "LOG_LEVEL": "debug",
            "JOIN_CODE_MAX_ATTEMPTS": "7",
            "LEADERBOARD_MAX_WORKERS": "4",
            "PUBLIC_GROUPS_LIMIT": "15",
        }

        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})

        self.assertEqual(app.config["SECRET_KEY"], "s3cret")
        self.assertEqual(app.config["JOIN_CODE_MAX_ATTEMPTS"], 7)
        self.assertEqual(app.config["LEADERBOARD_MAX_WORKERS"], 4)
        self.assertEqual(app.config["PUBLIC_GROUPS_LIMIT"], 15)
        self.assertEqual(app.logger.level, 10)

    def test_config_bad_values_fall_back_to_defaults(self):
        """Empty or malformed environment variables fall back to default values."""
        env_vars = {
            "JOIN_CODE_MAX_ATTEMPTS": "",
            "LEADERBOARD_MAX_WORKERS": "many",
            "LOG_LEVEL": "",
        }

        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})

        self.assertEqual(app.config["JOIN_CODE_MAX_ATTEMPTS"], 5)
        self.assertEqual(app.config["LEADERBOARD_MAX_WORKERS"], 8)
        self.assertEqual(app.config["PUBLIC_GROUPS_LIMIT"], 20)
        self.assertEqual(app.config["LOG_LEVEL"], "INFO")

    def test_test_config_overrides_environment(self):
        with patch.dict(os.environ, {"PUBLIC_GROUPS_LIMIT": "15"}):
            app = create_app({"TESTING": True, "PUBLIC_GROUPS_LIMIT": 3})
        self.assertEqual(app.config["PUBLIC_GROUPS_LIMIT"], 3)

    @patch("firebase_admin.initialize_app")
    @patch("firebase_admin.credentials.Certificate")
    def test_firebase_initialized_from_env_json(self, mock_certificate, mock_init_app):
        """Outside of testing, credentials come from FIREBASE_CREDENTIALS_JSON."""
        cred_info = {"type": "service_account", "project_id": "stepladder-test"}
        env_vars = {"FIREBASE_CREDENTIALS_JSON": json.dumps(cred_info)}

        with patch.dict(os.environ, env_vars), patch.dict(
            "firebase_admin._apps", clear=True
        ):
            create_app()

        mock_certificate.assert_called_once_with(cred_info)
        mock_init_app.assert_called_once_with(
            mock_certificate.return_value, {"projectId": "stepladder-test"}
        )

    def test_https_scheme_with_proxy_headers(self):
        """X-Forwarded-Proto is respected behind a proxy."""
        app = create_app({"TESTING": True})

        @app.route("/test_scheme")
        def test_scheme():
            from flask import request

            return request.scheme

        response = app.test_client().get(
            "/test_scheme", headers={"X-Forwarded-Proto": "https"}
        )
        self.assertEqual(response.data.decode(), "https")

    @patch("firebase_admin.initialize_app")
    @patch("firebase_admin.credentials.ApplicationDefault")
    def test_health_check(self, mock_default_cred, mock_init_app):
        """The entry point exposes a health route."""
        with patch.dict(os.environ, {"FIREBASE_CREDENTIALS_JSON": ""}):
            sys.modules.pop("app", None)
            entry = importlib.import_module("app")

        response = entry.app.test_client().get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, b"OK")


if __name__ == "__main__":
    unittest.main()
